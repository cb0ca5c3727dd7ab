"""Tests for the per-chat busy flag."""
import pytest

from tangoquiz.errors import BusyError
from tangoquiz.services.busy import BusyFlag


@pytest.mark.asyncio
async def test_hold_and_release() -> None:
    busy = BusyFlag()

    async with busy.hold("refresh"):
        assert busy.busy is True
    assert busy.busy is False


@pytest.mark.asyncio
async def test_second_action_is_rejected() -> None:
    busy = BusyFlag()

    async with busy.hold("add_word"):
        with pytest.raises(BusyError):
            async with busy.hold("remove_word"):
                pass
        # The rejected action does not release the running one
        assert busy.busy is True
    assert busy.busy is False


@pytest.mark.asyncio
async def test_released_after_failure() -> None:
    busy = BusyFlag()

    with pytest.raises(RuntimeError):
        async with busy.hold("refresh"):
            raise RuntimeError("connection reset")
    assert busy.busy is False
    assert not hasattr(busy, "action")
