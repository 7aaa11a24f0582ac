"""
SQLite implementation of the storage interfaces.

One `SQLiteStorage` serves as bucket, member and stream metadata store, so a
fragmenter and its bootstrap can share a single database connection:

    storage = SQLiteStorage("streamfrag.db")
    fragmenter = TimestampFragmenter(
        stream_id, config,
        bucket_storage=storage,
        member_storage=storage,
        timestamp_extractor=PayloadTimestampExtractor(),
    )
"""

import json
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from streamfrag.bucket import Bucket
from streamfrag.errors import DuplicateBucketError, NotFoundError, StoreError
from streamfrag.instant import as_utc
from streamfrag.member import Member
from streamfrag.relation import Relation
from streamfrag.storage.interfaces import (
    SDS_STREAM,
    BucketStorageInterface,
    MemberStorageInterface,
    StreamMetadata,
    StreamMetadataStorageInterface,
)
from streamfrag.storage.models import BucketRow, MemberRow, StreamMetaRow


def _to_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return as_utc(value)


def _from_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


class SQLiteStorage(BucketStorageInterface, MemberStorageInterface, StreamMetadataStorageInterface):
    """
    SQLite implementation of the bucket, member and stream metadata stores.
    """

    def __init__(self, db_path: str, check_same_thread: bool = True):
        connect_args = {"check_same_thread": check_same_thread}
        self.engine = create_engine(f"sqlite:///{db_path}", connect_args=connect_args)
        SQLModel.metadata.create_all(self.engine)
        self._session = Session(self.engine)

    def _commit(self, on_integrity_error: type[StoreError] = StoreError) -> None:
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise on_integrity_error(f"Integrity violation: {e.orig}") from e
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(str(e)) from e

    def _row(self, stream_id: str, bucket_id: str) -> BucketRow | None:
        statement = select(BucketRow).where(BucketRow.stream_id == stream_id, BucketRow.bucket_id == bucket_id)
        try:
            return self._session.exec(statement).first()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def _require_row(self, stream_id: str, bucket_id: str) -> BucketRow:
        row = self._row(stream_id, bucket_id)
        if row is None:
            raise NotFoundError(f"Bucket {bucket_id!r} of stream {stream_id!r} was not found")
        return row

    @staticmethod
    def _to_bucket(row: BucketRow) -> Bucket:
        return Bucket(
            bucket_id=row.bucket_id,
            stream_id=row.stream_id,
            leaf=row.leaf,
            start=_from_db(row.start),
            end=_from_db(row.end),
            members=tuple(row.members),
            relations=tuple(Relation.model_validate(r) for r in row.relations),
        )

    # --- Buckets ---

    async def find_bucket(self, stream_id: str, bucket_id: str) -> Bucket | None:
        row = self._row(stream_id, bucket_id)
        return self._to_bucket(row) if row is not None else None

    async def insert_bucket(self, bucket: Bucket) -> None:
        if self._row(bucket.stream_id, bucket.bucket_id) is not None:
            raise DuplicateBucketError(f"Bucket {bucket.bucket_id!r} of stream {bucket.stream_id!r} already exists")
        self._session.add(
            BucketRow(
                stream_id=bucket.stream_id,
                bucket_id=bucket.bucket_id,
                leaf=bucket.leaf,
                start=_to_db(bucket.start),
                end=_to_db(bucket.end),
                members=list(bucket.members),
                relations=[r.model_dump(mode="json") for r in bucket.relations],
                count=bucket.count,
            )
        )
        self._commit(on_integrity_error=DuplicateBucketError)

    async def append_member_ids(self, stream_id: str, bucket_id: str, member_ids: Sequence[str]) -> None:
        row = self._require_row(stream_id, bucket_id)
        # JSON columns are not mutation-tracked; assign a new list
        row.members = [*row.members, *member_ids]
        row.count = len(row.members)
        self._session.add(row)
        self._commit()

    async def append_relations(self, stream_id: str, bucket_id: str, relations: Sequence[Relation]) -> None:
        row = self._require_row(stream_id, bucket_id)
        for relation in relations:
            self._require_row(stream_id, relation.bucket)
        row.relations = [*row.relations, *(r.model_dump(mode="json") for r in relations)]
        self._session.add(row)
        self._commit()

    async def set_fields(
        self,
        stream_id: str,
        bucket_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> None:
        row = self._require_row(stream_id, bucket_id)
        if start is not None:
            row.start = _to_db(start)
        if end is not None:
            row.end = _to_db(end)
        self._session.add(row)
        self._commit()

    async def find_most_recent_by_start(self, stream_id: str) -> Bucket | None:
        statement = (
            select(BucketRow)
            .where(BucketRow.stream_id == stream_id, BucketRow.start.is_not(None))  # type: ignore[union-attr]
            .order_by(BucketRow.start.desc(), BucketRow.bucket_id.desc())  # type: ignore[union-attr]
            .limit(1)
        )
        try:
            row = self._session.exec(statement).first()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return self._to_bucket(row) if row is not None else None

    async def list_buckets(self, stream_id: str) -> list[Bucket]:
        statement = (
            select(BucketRow)
            .where(BucketRow.stream_id == stream_id)
            .order_by(BucketRow.start.is_not(None), BucketRow.start, BucketRow.bucket_id)  # type: ignore[union-attr]
        )
        try:
            rows = self._session.exec(statement).all()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return [self._to_bucket(row) for row in rows]

    # --- Members ---

    async def insert_members(self, members: Sequence[Member]) -> None:
        for member in members:
            try:
                data = json.dumps(member.payload)
            except (TypeError, ValueError) as e:
                self._session.rollback()
                raise StoreError(f"Payload of member {member.member_id!r} is not JSON-serialisable") from e
            self._session.merge(MemberRow(member_id=member.member_id, data=data))
        self._commit()

    async def get_member(self, member_id: str) -> Member | None:
        row = self._session.get(MemberRow, member_id)
        if row is None:
            return None
        return Member(member_id=row.member_id, payload=json.loads(row.data))

    async def count(self) -> int:
        statement = select(func.count(MemberRow.member_id))  # type: ignore[arg-type] # pylint: disable=not-callable
        return self._session.exec(statement).one()

    # --- Stream metadata ---

    async def find_stream_meta(self, stream_id: str) -> StreamMetadata | None:
        row = self._session.get(StreamMetaRow, stream_id)
        if row is None:
            return None
        return StreamMetadata(stream_id=row.stream_id, value=row.value, type=row.type)

    async def insert_stream_meta(self, stream_id: str, description: str) -> None:
        self._session.add(StreamMetaRow(stream_id=stream_id, value=description, type=SDS_STREAM))
        self._commit()

    async def close(self) -> None:
        """
        Close connections and clean up resources.
        """
        self._session.close()
        self.engine.dispose()
