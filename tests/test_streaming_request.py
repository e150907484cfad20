from __future__ import annotations

from queue import Empty

import pytest

from models import AudioBuffer
from streaming_request import StreamingRecognitionRequest


def _buffer(tag: int = 0) -> AudioBuffer:
    return AudioBuffer(pcm16_bytes=bytes([tag]) * 4, frame_count=2)


def test_reads_buffers_in_order_then_none_after_end() -> None:
    request = StreamingRecognitionRequest()
    first, second = _buffer(1), _buffer(2)
    request.append(first)
    request.append(second)
    request.end_audio()

    assert request.read(timeout=0.1) is first
    assert request.read(timeout=0.1) is second
    assert request.read(timeout=0.1) is None
    assert request.read(timeout=0.01) is None


def test_read_times_out_while_audio_is_open() -> None:
    request = StreamingRecognitionRequest()

    with pytest.raises(Empty):
        request.read(timeout=0.01)


def test_append_after_end_is_ignored() -> None:
    request = StreamingRecognitionRequest()
    request.end_audio()
    request.end_audio()
    request.append(_buffer())

    assert request.is_ended is True
    assert request.read(timeout=0.01) is None


def test_full_queue_drops_without_blocking() -> None:
    request = StreamingRecognitionRequest(maxsize=1)
    kept = _buffer(1)
    request.append(kept)
    request.append(_buffer(2))

    assert request.dropped_buffers == 1

    # end_audio on a full queue still terminates the reader
    request.end_audio()
    assert request.read(timeout=0.01) is kept
    assert request.read(timeout=0.01) is None


def test_partial_results_requested_by_default() -> None:
    assert StreamingRecognitionRequest().report_partial_results is True
