"""Unit tests for inbound frame routing."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from obs_source_tracker.client import FrameRouter
from obs_source_tracker.errors import RequestTimeoutError
from obs_source_tracker.tracker import VisibilityTracker


def event_frame(event_data: dict[str, Any], event_type: str = "SceneItemEnableStateChanged") -> str:
    return json.dumps(
        {"op": 5, "d": {"eventType": event_type, "eventIntent": 128, "eventData": event_data}}
    )


@pytest.fixture
def tracker(store, clock) -> VisibilityTracker:
    return VisibilityTracker(store, clock=clock)


@pytest.fixture
def handshake() -> MagicMock:
    handshake = MagicMock()
    handshake.handle = AsyncMock()
    return handshake


@pytest.fixture
def correlator() -> MagicMock:
    correlator = MagicMock()
    correlator.send_request = AsyncMock(return_value={"sourceName": "Camera1"})
    return correlator


@pytest.fixture
def router(handshake, correlator, tracker) -> FrameRouter:
    return FrameRouter(handshake, correlator, tracker)


async def drain_lookups(router: FrameRouter) -> None:
    for _ in range(100):
        if router.pending_lookups == 0:
            return
        await asyncio.sleep(0)
    raise AssertionError("source lookups did not finish")


# =============================================================================
# Demultiplexing
# =============================================================================


class TestDispatch:
    """Test routing by opcode."""

    @pytest.mark.asyncio
    async def test_hello_goes_to_handshake(self, router, handshake):
        await router.dispatch('{"op": 0, "d": {"rpcVersion": 1}}')

        handshake.handle.assert_awaited_once()
        assert handshake.handle.await_args.args[0].op == 0

    @pytest.mark.asyncio
    async def test_identified_goes_to_handshake(self, router, handshake):
        await router.dispatch('{"op": 2, "d": {"negotiatedRpcVersion": 1}}')

        handshake.handle.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_response_goes_to_correlator(self, router, correlator):
        await router.dispatch(
            json.dumps(
                {
                    "op": 7,
                    "d": {
                        "requestType": "GetSceneList",
                        "requestId": "req_1",
                        "requestStatus": {"result": True, "code": 100},
                    },
                }
            )
        )

        correlator.resolve.assert_called_once()
        assert correlator.resolve.call_args.args[0].request_id == "req_1"

    @pytest.mark.asyncio
    async def test_response_without_request_id_is_dropped(self, router, correlator):
        await router.dispatch('{"op": 7, "d": {"requestType": "GetSceneList"}}')

        correlator.resolve.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["not json", "[]", '{"op": "five"}', '{"op": 5, "d": 1}'])
    async def test_malformed_frames_are_dropped(self, router, handshake, correlator, raw):
        """Malformed frames are logged and dropped without raising."""
        await router.dispatch(raw)

        handshake.handle.assert_not_awaited()
        correlator.resolve.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_opcode_is_dropped(self, router, handshake, correlator, tracker):
        await router.dispatch('{"op": 9, "d": {}}')

        handshake.handle.assert_not_awaited()
        correlator.resolve.assert_not_called()
        assert tracker.active_sources == []


# =============================================================================
# Visibility events
# =============================================================================


class TestVisibilityEvents:
    """Test SceneItemEnableStateChanged handling."""

    @pytest.mark.asyncio
    async def test_event_with_source_name(self, router, tracker):
        await router.dispatch(
            event_frame({"sceneName": "Main", "sourceName": "Camera1", "sceneItemEnabled": True})
        )

        assert tracker.active_sources == ["Camera1"]

    @pytest.mark.asyncio
    async def test_event_hides_source(self, router, tracker):
        tracker.apply_visibility("Camera1", True)

        await router.dispatch(event_frame({"sourceName": "Camera1", "sceneItemEnabled": False}))

        assert tracker.active_sources == []

    @pytest.mark.asyncio
    async def test_event_is_marked_as_live(self, router, tracker):
        """A running poll cycle can tell the source changed under it."""
        mark = tracker.event_mark

        await router.dispatch(event_frame({"sourceName": "Camera1", "sceneItemEnabled": True}))

        assert tracker.had_event_since("Camera1", mark)

    @pytest.mark.asyncio
    async def test_event_with_scene_item_name(self, router, tracker):
        await router.dispatch(event_frame({"sceneItemName": "Logo", "sceneItemEnabled": True}))

        assert tracker.is_active("Logo")

    @pytest.mark.asyncio
    async def test_event_by_item_id_looks_up_source(self, router, tracker, correlator):
        """Events that only carry sceneName and sceneItemId resolve the source name."""
        await router.dispatch(
            event_frame({"sceneName": "Main", "sceneItemId": 3, "sceneItemEnabled": True})
        )
        await drain_lookups(router)

        correlator.send_request.assert_awaited_once_with(
            "GetSceneItemSource", {"sceneName": "Main", "sceneItemId": 3}
        )
        assert tracker.is_active("Camera1")

    @pytest.mark.asyncio
    async def test_failed_lookup_is_dropped(self, router, tracker, correlator):
        correlator.send_request.side_effect = RequestTimeoutError("GetSceneItemSource", 3.0)

        await router.dispatch(
            event_frame({"sceneName": "Main", "sceneItemId": 3, "sceneItemEnabled": True})
        )
        await drain_lookups(router)

        assert tracker.active_sources == []

    @pytest.mark.asyncio
    async def test_event_without_enabled_flag_is_dropped(self, router, tracker):
        await router.dispatch(event_frame({"sourceName": "Camera1"}))

        assert tracker.active_sources == []

    @pytest.mark.asyncio
    async def test_non_boolean_enabled_flag_is_dropped(self, router, tracker):
        await router.dispatch(event_frame({"sourceName": "Camera1", "sceneItemEnabled": "yes"}))

        assert tracker.active_sources == []

    @pytest.mark.asyncio
    async def test_event_without_source_reference_is_dropped(self, router, tracker, correlator):
        await router.dispatch(event_frame({"sceneName": "Main", "sceneItemEnabled": True}))

        assert tracker.active_sources == []
        correlator.send_request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_events_are_ignored(self, router, tracker):
        await router.dispatch(
            event_frame({"sourceName": "Camera1", "sceneItemEnabled": True}, "SceneCreated")
        )

        assert tracker.active_sources == []

    @pytest.mark.asyncio
    async def test_event_without_type_is_dropped(self, router, tracker):
        await router.dispatch('{"op": 5, "d": {"eventData": {"sourceName": "Camera1"}}}')

        assert tracker.active_sources == []

    @pytest.mark.asyncio
    async def test_cancel_lookups(self, router, correlator):
        blocker = asyncio.Event()

        async def never_answers(*args: Any) -> dict[str, Any]:
            await blocker.wait()
            return {}

        correlator.send_request.side_effect = never_answers
        await router.dispatch(
            event_frame({"sceneName": "Main", "sceneItemId": 3, "sceneItemEnabled": True})
        )
        assert router.pending_lookups == 1

        router.cancel_lookups()

        assert router.pending_lookups == 0
