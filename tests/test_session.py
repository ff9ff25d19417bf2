from datetime import UTC, datetime, timedelta

import pytest

from conftest import make_token
from telecare.core.errors import SessionClosedError
from telecare.core.session import ApiSession, token_subject


async def test_reads_expiry_from_token():
    token = make_token(expires_in=timedelta(hours=2))
    async with ApiSession(token) as session:
        assert session.claims["sub"] == "patient-1"
        remaining = session.expires_at - datetime.now(UTC)
        assert timedelta(hours=1, minutes=55) < remaining <= timedelta(hours=2)
        assert session.needs_refresh() is False


async def test_needs_refresh_inside_window():
    async with ApiSession(make_token(expires_in=timedelta(minutes=10))) as session:
        assert session.needs_refresh() is True
        assert session.needs_refresh(within=timedelta(minutes=5)) is False


async def test_opaque_token_always_needs_refresh():
    async with ApiSession("not-a-jwt") as session:
        assert session.claims == {}
        assert session.expires_at is None
        assert session.needs_refresh() is True


async def test_replace_token_updates_header():
    async with ApiSession(make_token()) as session:
        new = make_token(expires_in=timedelta(hours=3))
        session.replace_token(new)
        assert session.token == new
        assert session.client.headers["Authorization"] == f"Bearer {new}"


async def test_adopt_only_later_expiring_token():
    current = make_token(expires_in=timedelta(hours=2))
    async with ApiSession(current) as session:
        assert session.adopt_if_newer(make_token(expires_in=timedelta(hours=1))) is False
        assert session.adopt_if_newer("opaque-token") is False
        assert session.token == current
        newer = make_token(expires_in=timedelta(hours=3))
        assert session.adopt_if_newer(newer) is True
        assert session.token == newer


async def test_closed_session():
    session = ApiSession(make_token())
    await session.aclose()
    await session.aclose()
    assert session.closed
    with pytest.raises(SessionClosedError):
        session.client
    with pytest.raises(SessionClosedError):
        session.replace_token(make_token())


def test_token_required():
    with pytest.raises(ValueError):
        ApiSession("")


def test_token_subject():
    assert token_subject(make_token(sub="u-9")) == "u-9"
    assert token_subject("opaque") == "opaque"
