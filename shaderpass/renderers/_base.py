import base64

import numpy as np
import imageio.v3 as iio


THUMBNAIL_SIZE = (400, 300)


class RenderContext:
    """Base (abstract) render context class.

    A render context wraps a (scarce) rendering resource, e.g. an offscreen
    GPU canvas. It compiles the assembled sources produced by the compiler,
    renders frames with them, and captures the result. Subclasses must
    implement ``compile_program()``, ``render_frame()`` and ``read_pixels()``.

    A render context is not thread-safe; it should only be used from one
    thread at a time.
    """

    def __init__(self, size=THUMBNAIL_SIZE):
        self._size = int(size[0]), int(size[1])

    @property
    def size(self):
        """The (width, height) of the render target in pixels."""
        return self._size

    def compile_program(self, source, pass_name):
        """Compile the fragment shader source for the given pass.

        Must return a tuple ``(handle, info_log)``, where the handle is
        whatever ``render_frame()`` needs, and the info log may contain
        warnings. On failure, raise ``ShaderCompileError`` with the log.
        """
        raise NotImplementedError()

    def render_frame(self, programs, uniforms):
        """Render a single frame.

        The ``programs`` is a dict mapping pass names to handles, in render
        order. The ``uniforms`` is the structured array from ``create_uniforms()``.
        """
        raise NotImplementedError()

    def read_pixels(self):
        """Get the last rendered frame as a uint8 array of shape (h, w, 4)."""
        raise NotImplementedError()

    def capture(self):
        """Get the last rendered frame as a PNG data URL."""
        return encode_data_url(self.read_pixels())

    def dispose(self):
        """Release the resources held by this context."""
        pass


def encode_data_url(frame):
    """Encode an image array as a PNG data URL."""
    frame = np.asarray(frame)
    if frame.ndim not in (2, 3) or frame.dtype != np.uint8:
        raise ValueError(
            f"Expected a uint8 image array, got {frame.dtype} with shape {frame.shape}"
        )
    png = iio.imwrite("<bytes>", frame, extension=".png")
    return "data:image/png;base64," + base64.b64encode(png).decode()
