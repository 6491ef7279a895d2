# Overview: Transactional unit of work spanning products, clients and sales.

"""
Unit of Work

One UnitOfWork is one storage transaction. Everything read or written through
``uow.session`` between enter and exit commits together or not at all:

    with UnitOfWork() as uow:
        product = get_product(uow.session, 7, lock=True)
        decrement_stock(uow.session, 7, 3)
        uow.session.add(sale)
    # committed here; any exception inside the block rolled everything back

On SQLite the transaction is opened with BEGIN IMMEDIATE so the database
write lock is held from the first read. Other databases get row locks from
SELECT ... FOR UPDATE (see concurrency.lock_for_update).

Services take a ``uow_factory`` (default: UnitOfWork) so another backend's
transaction primitive can be plugged in.
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy import text
from sqlalchemy.orm import Session

from ..extensions import db


class UnitOfWork:
    def __init__(self, session: Session | None = None):
        self.session = session if session is not None else db.session
        self.committed = False

    def _begin(self) -> None:
        conn = self.session.connection()
        if conn.dialect.name != "sqlite":
            return
        # pysqlite opens its own transaction lazily before the first write
        if conn.connection.dbapi_connection.in_transaction:
            return
        conn.execute(text("BEGIN IMMEDIATE"))

    def __enter__(self) -> "UnitOfWork":
        self._begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.session.rollback()
            return False
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.committed = True
        return False


UnitOfWorkFactory = Callable[[], UnitOfWork]
