import numpy as np
import pytest

from models.errors import InvalidInputError, PipelineError
from models.upscale_job import UpscaleRequest
from models.upscale_settings import UpscaleSettings
from pipeline.progress import CallbackProgressSink
from pipeline.upscale_pipeline import target_size, upscale
from services.edge_enhancement_service import EdgeEnhancementService
from services.resample_service import ResampleService


def _collect():
    events = []
    return events, CallbackProgressSink(events.append)


@pytest.mark.parametrize("width, height, scale, expected", [
    (5, 3, 2, (10, 6)),
    (7, 5, 1.5, (11, 8)),
    (4, 4, 0.5, (2, 2)),
    (3, 2, 3, (9, 6)),
])
def test_output_shape(width, height, scale, expected, random_rgba):
    pixels = random_rgba(width, height, seed=width * height)
    result = upscale(UpscaleRequest(width, height, scale, pixels.tobytes()))

    assert (result.width, result.height) == expected
    assert target_size(width, height, scale) == expected
    assert result.buffer.dtype == np.uint8
    assert result.buffer.size == expected[0] * expected[1] * 4
    assert result.duration_ms >= 0


def test_uniform_gray_stays_gray(solid_request):
    result = upscale(solid_request(4, 4, 2, (128, 128, 128, 255)))
    out = result.buffer.reshape(8, 8, 4)

    assert (result.width, result.height) == (8, 8)
    assert np.all(out == out[0, 0])
    assert np.all(np.abs(out[..., :3].astype(int) - 128) <= 1)
    assert np.all(out[..., 3] == 255)


def test_single_bright_pixel_rings_within_kernel_support():
    src = np.zeros((11, 11, 4), dtype=np.uint8)
    src[..., 3] = 255
    src[5, 5, :3] = 255
    result = upscale(UpscaleRequest(11, 11, 3, src.tobytes()))
    out = result.buffer.reshape(33, 33, 4).astype(int)

    background = out[0, 0]
    # destinations farther than the Lanczos support (plus blur radius) never see the spike
    for band in (out[:6], out[27:], out[:, :6], out[:, 27:]):
        assert np.all(band == background)
    spike = out[16, 16, :3]
    assert np.all(spike > background[:3])
    assert (np.abs(out[8:25, 8:25, :3] - background[:3]).sum(axis=2) > 0).sum() > 1


def test_output_in_range_for_extreme_input(random_rgba):
    pixels = random_rgba(6, 6, seed=9)
    pixels[::2, ::2, :3] = 255
    pixels[1::2, 1::2, :3] = 0
    result = upscale(UpscaleRequest(6, 6, 4, pixels.tobytes()))
    assert result.buffer.min() >= 0 and result.buffer.max() <= 255


def test_progress_is_monotonic_and_ends_at_100(random_rgba):
    events, sink = _collect()
    upscale(UpscaleRequest(30, 20, 2, random_rgba(30, 20).tobytes()), sink)

    values = [e.value for e in events]
    assert values == sorted(values)
    assert values[0] == 5
    assert values[-1] == 100
    assert all(0 <= v <= 100 for v in values)
    assert any(18 < v < 63 for v in values)
    assert events[-1].label == "Done."


def test_invalid_buffer_length_fails_without_progress():
    events, sink = _collect()
    with pytest.raises(InvalidInputError):
        upscale(UpscaleRequest(4, 4, 2, bytes(4 * 4 * 4 - 1)), sink)
    assert events == []


@pytest.mark.parametrize("scale", [0, -1, float("nan"), float("inf")])
def test_non_positive_scale_is_rejected(scale, solid_request):
    events, sink = _collect()
    with pytest.raises(InvalidInputError):
        upscale(solid_request(scale=scale), sink)
    assert events == []


def test_scale_that_collapses_the_image_is_rejected(solid_request):
    with pytest.raises(InvalidInputError):
        upscale(solid_request(4, 4, 0.1))


def test_non_finite_values_abort_the_run(monkeypatch, solid_request):
    def broken(self, rgba, width, height, new_width, new_height, on_progress=None):
        return np.full((new_height, new_width, 4), np.nan)

    monkeypatch.setattr(ResampleService, "resample", broken)
    events, sink = _collect()
    with pytest.raises(PipelineError):
        upscale(solid_request(), sink)
    assert 100 not in [e.value for e in events]


def test_unexpected_failure_is_wrapped(monkeypatch, solid_request):
    def boom(self, rgba, width, height):
        raise MemoryError("out of memory")

    monkeypatch.setattr(EdgeEnhancementService, "enhance", boom)
    with pytest.raises(PipelineError, match="out of memory"):
        upscale(solid_request())


def test_runs_are_deterministic(random_rgba):
    request = UpscaleRequest(7, 5, 2.5, random_rgba(7, 5, seed=11).tobytes())
    first = upscale(request)
    second = upscale(request)
    assert np.array_equal(first.buffer, second.buffer)


def test_settings_change_the_output(random_rgba):
    request = UpscaleRequest(8, 8, 2, random_rgba(8, 8, seed=5).tobytes())
    default = upscale(request)
    softer = upscale(request, settings=UpscaleSettings(strong_boost=0.0, weak_boost=0.0))
    assert not np.array_equal(default.buffer, softer.buffer)


def test_accepts_ndarray_buffers(random_rgba):
    pixels = random_rgba(3, 3)
    result = upscale(UpscaleRequest(3, 3, 2, pixels))
    assert (result.width, result.height) == (6, 6)


@pytest.mark.parametrize("dtype", [np.float64, np.int32, np.uint16])
def test_non_8bit_ndarray_buffers_are_rejected(dtype):
    events, sink = _collect()
    with pytest.raises(InvalidInputError, match="8-bit"):
        upscale(UpscaleRequest(2, 2, 2, np.full(16, 300, dtype=dtype)), sink)
    assert events == []


def test_failure_while_reporting_completion_is_wrapped(solid_request):
    def sink_fails_at_end(event):
        if event.value == 100:
            raise RuntimeError("listener gone")

    with pytest.raises(PipelineError, match="listener gone"):
        upscale(solid_request(), CallbackProgressSink(sink_fails_at_end))
