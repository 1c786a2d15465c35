"""Entity Store: keyed table primitives over a SQLModel session.

The engine never touches the session directly. Every mutation goes through
``insert``/``update``/``delete`` and every operation runs inside
``transaction()``, which commits all of its writes or none of them.
"""

import datetime as dt
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import FlushError
from sqlmodel import Session, SQLModel, col, func, select

from .errors import DuplicateKey, NotFound
from .models import Sequence

Row = TypeVar("Row", bound=SQLModel)
Clock = Callable[[], dt.datetime]


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class Scan:
    """A restartable, lazily evaluated table scan.

    Each iteration runs the query again, so a ``Scan`` sees writes made
    earlier in the same transaction.
    """

    def __init__(
        self,
        session: Session,
        model: type[Row],
        predicate: Callable[[Row], bool] | None,
        criteria: dict[str, Any],
    ):
        self._session = session
        self._model = model
        self._predicate = predicate
        self._criteria = criteria

    def __iter__(self) -> Iterator[Row]:
        statement = select(self._model)
        for name, value in self._criteria.items():
            statement = statement.where(col(getattr(self._model, name)) == value)
        for row in self._session.exec(statement):
            if self._predicate is None or self._predicate(row):
                yield row


class EntityStore:
    """Transactional access to the game tables."""

    def __init__(self, session: Session, clock: Clock = utcnow):
        self.session = session
        self.clock = clock
        self.now: dt.datetime | None = None
        self._in_transaction = False

    @contextmanager
    def transaction(self) -> Iterator["EntityStore"]:
        """Run the enclosed operation as one atomic unit.

        The transaction timestamp is read from the clock once, so every
        write of an operation carries the same time.
        """
        if self._in_transaction:
            raise RuntimeError("transaction already open on this store")
        self._in_transaction = True
        self.now = self.clock()
        try:
            yield self
            self.session.commit()
        except BaseException:
            self.session.rollback()
            raise
        finally:
            self._in_transaction = False
            self.now = None

    @property
    def timestamp(self) -> dt.datetime:
        if self.now is None:
            raise RuntimeError("no transaction is open")
        return self.now

    def insert(self, row: Row) -> Row:
        """Add a row; fails with DuplicateKey on a key or unique clash."""
        self.session.add(row)
        try:
            self.session.flush()
        except (IntegrityError, FlushError) as exc:
            raise DuplicateKey(
                f"{type(row).__name__} already exists"
            ) from exc
        return row

    def update(self, model: type[Row], key: Any, **fields: Any) -> Row:
        row = self.session.get(model, key)
        if row is None:
            raise NotFound(f"{model.__name__} {key!r} not found")
        for name, value in fields.items():
            setattr(row, name, value)
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateKey(
                f"{model.__name__} update clashes with an existing row"
            ) from exc
        return row

    def delete(self, model: type[Row], key: Any) -> bool:
        """Remove the row with this key if present. Returns whether it existed."""
        row = self.session.get(model, key)
        if row is None:
            return False
        self.delete_row(row)
        return True

    def delete_row(self, row: SQLModel) -> None:
        self.session.delete(row)
        self.session.flush()

    def find(self, model: type[Row], key: Any) -> Row | None:
        return self.session.get(model, key)

    def find_one(self, model: type[Row], **criteria: Any) -> Row | None:
        return next(iter(self.iterate(model, **criteria)), None)

    def iterate(
        self,
        model: type[Row],
        predicate: Callable[[Row], bool] | None = None,
        **criteria: Any,
    ) -> Scan:
        return Scan(self.session, model, predicate, criteria)

    def count(self, model: type[Row], **criteria: Any) -> int:
        statement = select(func.count()).select_from(model)
        for name, value in criteria.items():
            statement = statement.where(col(getattr(model, name)) == value)
        return self.session.exec(statement).one()

    def next_id(self, kind: str) -> int:
        """Take the next value of a persisted per-kind counter."""
        sequence = self.session.get(Sequence, kind)
        if sequence is None:
            sequence = Sequence(kind=kind, value=0)
        sequence.value += 1
        self.session.add(sequence)
        self.session.flush()
        return sequence.value

    def wipe(self, *models: type[SQLModel]) -> dict[str, int]:
        """Delete every row of the given tables. Returns rows removed per table."""
        removed = {}
        for model in models:
            rows = list(self.iterate(model))
            for row in rows:
                self.session.delete(row)
            removed[model.__tablename__] = len(rows)
        self.session.flush()
        return removed
