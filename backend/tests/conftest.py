"""Shared test fixtures."""

import io
import zipfile
from datetime import date
from decimal import Decimal

import openpyxl
import pytest
import xlwt
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from finance_tracker.core.database import get_db
from finance_tracker.core.security import AuthenticatedUser, get_current_user
from finance_tracker.main import app
from finance_tracker.models import Base, Transaction


@pytest.fixture
async def engine():
    """In-memory SQLite database, fresh schema per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def user():
    return AuthenticatedUser(id="user-1", email="user@example.com")


@pytest.fixture
def other_user():
    return AuthenticatedUser(id="user-2", email="other@example.com")


@pytest.fixture
def admin():
    return AuthenticatedUser(id="admin-1", email="admin@example.com", role="admin")


@pytest.fixture
async def client(db_session, user):
    """Async test client for the FastAPI app, authenticated as ``user``."""

    async def override_get_db():
        yield db_session
        await db_session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: user
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def add_transaction(db_session, user):
    """Factory inserting a transaction (defaults to ``user``)."""

    async def _add(description, category, amount="-10.00", userid=None, txn_date=None, **kwargs):
        txn = Transaction(
            userid=userid or user.id,
            date=txn_date or date(2024, 2, 1),
            description=description,
            amount=Decimal(amount),
            category=category,
            **kwargs,
        )
        db_session.add(txn)
        await db_session.flush()
        return txn

    return _add


def _build_xlsx(rows: list[list]) -> bytes:
    """Build an .xlsx workbook in memory with the given rows on its first sheet."""
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_xlsx():
    return _build_xlsx


def _build_xls(rows: list[list]) -> bytes:
    """Build a legacy .xls (BIFF8) workbook in memory; None cells are left empty."""
    wb = xlwt.Workbook()
    ws = wb.add_sheet("Sheet1")
    for r, row in enumerate(rows):
        for c, value in enumerate(row):
            if value is not None:
                ws.write(r, c, value)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_xls():
    return _build_xls


@pytest.fixture
def corrupt_xls():
    """OLE compound document signature followed by garbage."""
    return b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 600


def _truncate_first_sheet(content: bytes) -> bytes:
    """Return a copy of an .xlsx archive whose first sheet XML is cut in half."""
    source = zipfile.ZipFile(io.BytesIO(content))
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as target:
        for item in source.infolist():
            data = source.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                data = data[: len(data) // 2]
            target.writestr(item, data)
    return buffer.getvalue()


@pytest.fixture
def truncated_xlsx(make_xlsx):
    return _truncate_first_sheet(
        make_xlsx([["Date", "Description", "Amount"]] + [["01/02/2024", f"Row {i}", "1.00"] for i in range(50)])
    )
