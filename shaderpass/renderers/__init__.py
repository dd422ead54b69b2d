"""
The purpose of this subpackage is to render compiled shaders, in particular
to produce thumbnails for gallery views.

Classes
-------

.. autoclass:: shaderpass.renderers.RenderContext
    :members:

.. autoclass:: shaderpass.renderers.ThumbnailQueue
    :members:

Details
-------

Shaderpass does not ship a rendering backend. A backend is plugged in by
subclassing ``RenderContext``, which compiles the sources produced by the
compiler, renders frames, and reads back the pixels::

     passes                      ___________
    -------- compile_passes() --> | render  | -- capture() --> data URL
                                  | context |
    uniforms -- render_frame() -> |_________|

All passes receive the same uniforms, created with ``create_uniforms()``.
The buffer passes are available to later passes as the ``BufferA`` to
``BufferD`` samplers.

"""

# flake8: noqa

from ._base import RenderContext, encode_data_url, THUMBNAIL_SIZE
from .uniforms import create_uniforms, uniform_type, uniform_dtype
from .thumbnails import ThumbnailQueue
