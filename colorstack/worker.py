"""
ColorStack - Worker Boundary
Runs the pipeline on a background thread behind a one-shot message protocol.

Requests (dicts):
    {'type': 'init'}
    {'type': 'generate_palette', 'pixels', 'band_count', 'width', 'height'}
    {'type': 'process_image', 'pixels', 'structural_palette', 'render_palette',
     'current_layer', 'single_layer'}
    {'type': 'render_preview', 'band_map', 'render_palette', 'current_layer',
     'single_layer'}
    {'type': 'generate_mesh', 'band_map', 'band_count', 'print_params'}

Responses:
    worker_ready | palette_generated | image_processed | preview_rendered |
    mesh_generated | error

render_preview only recolors a cached band raster; it never reassigns bands.

Every request may carry a 'token' which is echoed back unchanged. Arrays are
copied on the way in and out, so neither side shares a mutable buffer.
"""

import itertools
import queue
import threading

import numpy as np

from colorstack.state import PaletteRequest, PaletteState, LayerParams, PrintParams
from colorstack.pipeline import run_palette_request, process_image, composite_preview, generate_mesh


RESPONSE_TYPES = {
    'init': 'worker_ready',
    'generate_palette': 'palette_generated',
    'process_image': 'image_processed',
    'render_preview': 'preview_rendered',
    'generate_mesh': 'mesh_generated',
}


def _copy_array(value):
    return None if value is None else np.array(value, copy=True)


def _handle_generate_palette(message: dict) -> dict:
    request = PaletteRequest(
        pixels=_copy_array(message['pixels']),
        band_count=message['band_count'],
        width=message.get('width'),
        height=message.get('height'),
        seed=message.get('seed'),
    )
    result = run_palette_request(request)
    return {
        'palette': list(result['palette'].structural),
        'background_color': result['background'],
    }


def _handle_process_image(message: dict) -> dict:
    state = PaletteState(message['structural_palette'], message.get('render_palette'))
    layer = LayerParams(
        current_layer=int(message.get('current_layer', 0)),
        single_layer=bool(message.get('single_layer', False)),
    )
    result = process_image(
        _copy_array(message['pixels']), state, layer,
        width=message.get('width'), height=message.get('height'),
    )
    return {
        'band_map': result['bands'].copy(),
        'preview': result['preview'].copy(),
    }


def _handle_render_preview(message: dict) -> dict:
    render = message['render_palette']
    state = PaletteState(message.get('structural_palette') or render, render)
    layer = LayerParams(
        current_layer=int(message.get('current_layer', 0)),
        single_layer=bool(message.get('single_layer', False)),
    )
    preview = composite_preview(_copy_array(message['band_map']), state, layer)
    return {'preview': preview.copy()}


def _handle_generate_mesh(message: dict) -> dict:
    params = PrintParams(**message.get('print_params', {}))
    band_map = _copy_array(message['band_map'])
    stl = generate_mesh(band_map, params, message.get('band_count'))
    return {
        'stl': stl,
        'triangle_count': int.from_bytes(stl[80:84], 'little'),
    }


_HANDLERS = {
    'generate_palette': _handle_generate_palette,
    'process_image': _handle_process_image,
    'render_preview': _handle_render_preview,
    'generate_mesh': _handle_generate_mesh,
}


def handle_message(message: dict) -> dict:
    """
    Serve one request synchronously.

    Never raises: any failure, including an unknown type, becomes an
    'error' response with a message.
    """
    msg_type = message.get('type') if isinstance(message, dict) else None
    token = message.get('token') if isinstance(message, dict) else None

    if msg_type == 'init':
        return {'type': 'worker_ready', 'token': token}

    handler = _HANDLERS.get(msg_type)
    if handler is None:
        return {'type': 'error', 'token': token, 'request': msg_type,
                'message': f"Unknown message type: {msg_type}"}

    try:
        data = handler(message)
    except Exception as e:
        print(f"[WORKER] {msg_type} failed: {e}")
        return {'type': 'error', 'token': token, 'request': msg_type,
                'message': f"Worker error: {e}"}

    response = {'type': RESPONSE_TYPES[msg_type], 'token': token}
    response.update(data)
    return response


class ImageWorker(threading.Thread):
    """
    Background thread draining a request queue into a response queue.
    Requests are served strictly in arrival order; nothing is cancelled.
    Put None on the request queue (or call stop()) to end the thread.
    """

    def __init__(self):
        super().__init__(name="colorstack-worker", daemon=True)
        self.requests = queue.Queue()
        self.responses = queue.Queue()

    def post(self, message: dict):
        self.requests.put(message)

    def stop(self):
        self.requests.put(None)

    def run(self):
        print("[WORKER] Started")
        while True:
            message = self.requests.get()
            if message is None:
                break
            self.responses.put(handle_message(message))
        print("[WORKER] Stopped")


class Coordinator:
    """
    Caller side of the boundary.

    Stamps each request with a fresh token and remembers the latest token
    per request type. Responses to superseded requests are dropped, so a
    slow palette reply can never overwrite the result of a newer one.
    Without a worker, requests are served inline.
    """

    def __init__(self, worker: ImageWorker = None):
        self.worker = worker
        self._tokens = itertools.count(1)
        self._latest = {}
        self._inline = queue.Queue()
        self._lock = threading.Lock()

    def submit(self, message: dict) -> int:
        token = next(self._tokens)
        message = dict(message, token=token)
        self._latest[message.get('type')] = token
        if self.worker is not None:
            self.worker.post(message)
        else:
            self._inline.put(handle_message(message))
        return token

    def is_current(self, response: dict) -> bool:
        """True when the response answers the latest request of its kind."""
        request_type = response.get('request')
        if request_type is None:
            request_type = next(
                (req for req, resp in RESPONSE_TYPES.items() if resp == response.get('type')),
                None,
            )
        return self._latest.get(request_type) == response.get('token')

    def _source(self) -> queue.Queue:
        return self.worker.responses if self.worker is not None else self._inline

    def poll(self, timeout: float = None):
        """
        Next current response, or None when none arrives within `timeout`.
        Stale responses are discarded along the way.
        """
        source = self._source()
        while True:
            try:
                response = source.get(timeout=timeout)
            except queue.Empty:
                return None
            if self.is_current(response):
                return response
            print(f"[WORKER] Discarding stale {response.get('type')} "
                  f"(token {response.get('token')})")

    def request(self, message: dict, timeout: float = None) -> dict:
        """
        Submit and wait for the matching response. Calls are serialized so
        concurrent callers never read each other's replies.

        Raises:
            TimeoutError: no response within `timeout`
        """
        with self._lock:
            token = self.submit(message)
            source = self._source()
            while True:
                try:
                    response = source.get(timeout=timeout)
                except queue.Empty:
                    raise TimeoutError(f"No response to {message.get('type')} within {timeout}s")
                if response.get('token') == token:
                    return response
                print(f"[WORKER] Discarding stale {response.get('type')} "
                      f"(token {response.get('token')})")
