"""
ColorStack - Worker boundary tests

Message protocol, error replies, request tokens and stale-response discard.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from colorstack.worker import handle_message, ImageWorker, Coordinator


def _two_color_image():
    img = np.zeros((8, 8, 4), dtype=np.uint8)
    img[:, :, 3] = 255
    img[:, 4:, :3] = 255
    return img


def _palette_message(img, band_count=2):
    return {
        'type': 'generate_palette',
        'pixels': img.reshape(-1),
        'band_count': band_count,
        'width': img.shape[1],
        'height': img.shape[0],
    }


# =========================================================================
# 1. handle_message
# =========================================================================

class TestHandleMessage:

    def test_init_handshake(self):
        assert handle_message({'type': 'init', 'token': 7}) == {'type': 'worker_ready', 'token': 7}

    def test_unknown_type(self):
        response = handle_message({'type': 'explode', 'token': 1})
        assert response['type'] == 'error'
        assert 'explode' in response['message']
        assert response['token'] == 1

    def test_not_a_dict(self):
        assert handle_message(None)['type'] == 'error'

    def test_generate_palette(self):
        response = handle_message(dict(_palette_message(_two_color_image()), token=3))
        assert response['type'] == 'palette_generated'
        assert response['token'] == 3
        assert sorted(response['palette']) == ['#000000', '#ffffff']
        assert response['background_color'] in ('#000000', '#ffffff')

    def test_generate_palette_bad_band_count(self):
        response = handle_message(_palette_message(_two_color_image(), band_count=1))
        assert response['type'] == 'error'
        assert 'Band count' in response['message']

    def test_generate_palette_bad_buffer(self):
        message = _palette_message(_two_color_image())
        message['width'] = 5
        assert handle_message(message)['type'] == 'error'

    def test_process_image(self):
        img = _two_color_image()
        before = img.copy()
        response = handle_message({
            'type': 'process_image',
            'pixels': img,
            'structural_palette': ['#000000', '#ffffff'],
            'render_palette': ['#ff0000', '#00ff00'],
            'current_layer': 1,
        })
        assert response['type'] == 'image_processed'
        assert response['band_map'].shape == (8, 8)
        assert np.all(response['band_map'][:, :4] == 0)
        assert np.all(response['band_map'][:, 4:] == 1)
        assert response['preview'].shape == (8, 8, 4)
        assert response['preview'][0, 7, :3].tolist() == [0, 255, 0]
        np.testing.assert_array_equal(img, before)

    def test_process_image_default_render(self):
        response = handle_message({
            'type': 'process_image',
            'pixels': _two_color_image(),
            'structural_palette': ['#000000', '#ffffff'],
        })
        assert response['preview'][0, 7, :3].tolist() == [0, 0, 0]

    def test_process_image_invalid_palette(self):
        response = handle_message({
            'type': 'process_image',
            'pixels': _two_color_image(),
            'structural_palette': ['#000000', 'white'],
        })
        assert response['type'] == 'error'

    def test_generate_palette_integral_float_band_count(self):
        response = handle_message(_palette_message(_two_color_image(), band_count=2.0))
        assert response['type'] == 'palette_generated'
        assert len(response['palette']) == 2

    def test_render_preview_uses_cached_raster(self, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("band raster recomputed")
        monkeypatch.setattr("colorstack.pipeline.assign_bands", fail)

        band_map = np.zeros((8, 8), dtype=np.int32)
        band_map[:, 4:] = 1
        before = band_map.copy()
        response = handle_message({
            'type': 'render_preview',
            'token': 5,
            'band_map': band_map,
            'structural_palette': ['#000000', '#ffffff'],
            'render_palette': ['#ff0000', '#0000ff'],
            'current_layer': 1,
        })
        assert response['type'] == 'preview_rendered'
        assert response['token'] == 5
        assert 'band_map' not in response
        assert response['preview'][0, 0, :3].tolist() == [255, 0, 0]
        assert response['preview'][0, 7, :3].tolist() == [0, 0, 255]
        np.testing.assert_array_equal(band_map, before)

    def test_render_preview_band_outside_palette(self):
        response = handle_message({
            'type': 'render_preview',
            'band_map': np.full((4, 4), 3, dtype=np.int32),
            'render_palette': ['#000000', '#ffffff'],
        })
        assert response['type'] == 'error'
        assert response['request'] == 'render_preview'

    def test_generate_mesh(self):
        response = handle_message({
            'type': 'generate_mesh',
            'band_map': np.zeros((4, 4), dtype=np.int32),
            'band_count': 2,
            'print_params': {'layer_height': 0.2, 'base_layers': 1, 'band_layers': 1,
                             'x_size_mm': 10.0, 'y_size_mm': 10.0},
        })
        assert response['type'] == 'mesh_generated'
        assert response['triangle_count'] == 60
        assert len(response['stl']) == 84 + 50 * 60

    def test_generate_mesh_rejects_thin_raster(self):
        response = handle_message({
            'type': 'generate_mesh',
            'band_map': np.zeros((1, 4), dtype=np.int32),
        })
        assert response['type'] == 'error'
        assert '2x2' in response['message']


# =========================================================================
# 2. Coordinator tokens
# =========================================================================

class TestCoordinator:

    def test_tokens_increase(self):
        coordinator = Coordinator()
        first = coordinator.submit({'type': 'init'})
        second = coordinator.submit({'type': 'init'})
        assert second > first

    def test_stale_response_discarded(self):
        coordinator = Coordinator()
        img = _two_color_image()
        coordinator.submit(_palette_message(img, band_count=2))
        latest = coordinator.submit(_palette_message(img, band_count=3))

        response = coordinator.poll(timeout=0)
        assert response['token'] == latest
        assert coordinator.poll(timeout=0) is None

    def test_different_types_tracked_separately(self):
        coordinator = Coordinator()
        palette_token = coordinator.submit(_palette_message(_two_color_image()))
        coordinator.submit({'type': 'init'})
        response = coordinator.poll(timeout=0)
        assert response['token'] == palette_token

    def test_error_response_is_current(self):
        coordinator = Coordinator()
        token = coordinator.submit(_palette_message(_two_color_image(), band_count=99))
        response = coordinator.poll(timeout=0)
        assert response['type'] == 'error'
        assert response['token'] == token

    def test_request_with_worker_thread(self):
        worker = ImageWorker()
        worker.start()
        try:
            coordinator = Coordinator(worker)
            assert coordinator.request({'type': 'init'}, timeout=10)['type'] == 'worker_ready'
            response = coordinator.request(_palette_message(_two_color_image()), timeout=30)
            assert response['type'] == 'palette_generated'
        finally:
            worker.stop()
            worker.join(timeout=10)
        assert not worker.is_alive()

    def test_request_skips_older_replies(self):
        worker = ImageWorker()
        worker.start()
        try:
            coordinator = Coordinator(worker)
            coordinator.submit({'type': 'init'})
            response = coordinator.request({'type': 'init'}, timeout=10)
            assert response['token'] == 2
        finally:
            worker.stop()
            worker.join(timeout=10)

    def test_request_timeout(self):
        coordinator = Coordinator(ImageWorker())  # never started
        with pytest.raises(TimeoutError):
            coordinator.request({'type': 'init'}, timeout=0.05)
