from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from coach_chat.application.repositories.catalog import CatalogReader
from coach_chat.application.repositories.message import MessageReader, MessageWriter
from coach_chat.application.repositories.outbox import OutboxWriter
from coach_chat.application.repositories.profile import ProfileReader


class UnitOfWork(Protocol):
    messages: MessageReader
    messages_w: MessageWriter
    profiles: ProfileReader
    catalog: CatalogReader
    outbox: OutboxWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
