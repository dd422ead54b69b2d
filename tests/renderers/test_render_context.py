import base64

import numpy as np
import imageio.v3 as iio
from pytest import raises

from shaderpass.renderers import RenderContext, encode_data_url, THUMBNAIL_SIZE


class ColorContext(RenderContext):
    def read_pixels(self):
        w, h = self.size
        frame = np.zeros((h, w, 4), np.uint8)
        frame[..., 0] = 255
        frame[..., 3] = 255
        return frame


def decode_data_url(url):
    prefix = "data:image/png;base64,"
    assert url.startswith(prefix)
    return iio.imread(base64.b64decode(url[len(prefix) :]), extension=".png")


def test_encode_data_url():
    frame = np.zeros((3, 4, 4), np.uint8)
    frame[1, 2] = 200, 100, 50, 255
    url = encode_data_url(frame)
    image = decode_data_url(url)
    assert image.shape == (3, 4, 4)
    assert image[1, 2].tolist() == [200, 100, 50, 255]


def test_encode_data_url_invalid():
    with raises(ValueError):
        encode_data_url(np.zeros((3, 4, 4), np.float32))
    with raises(ValueError):
        encode_data_url(np.zeros((3,), np.uint8))


def test_render_context_base():
    context = RenderContext()
    assert context.size == THUMBNAIL_SIZE == (400, 300)

    with raises(NotImplementedError):
        context.compile_program("", "Image")
    with raises(NotImplementedError):
        context.render_frame({}, None)
    with raises(NotImplementedError):
        context.read_pixels()
    with raises(NotImplementedError):
        context.capture()
    context.dispose()


def test_render_context_capture():
    context = ColorContext((8, 6))
    image = decode_data_url(context.capture())
    assert image.shape == (6, 8, 4)
    assert image[0, 0].tolist() == [255, 0, 0, 255]
