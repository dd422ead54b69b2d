"""
The fixed set of uniforms that every pass receives.

The values are packed in a numpy structured array, so that a render context
can upload them field by field (or in one go, if its backend supports that).
"""

import datetime

import numpy as np


uniform_type = dict(
    iResolution="3xf4",
    iTime="f4",
    iTimeDelta="f4",
    iFrameRate="f4",
    iFrame="i4",
    iDate="4xf4",
    iMouse="4xf4",
)


def _dtype_from_uniform_type(utype):
    fields = []
    for name, format in utype.items():
        shapestr, _, primitive = format.rpartition("x")
        shape = tuple(int(i) for i in shapestr.split("x") if i)
        fields.append((name, np.dtype(primitive), shape))
    return np.dtype(fields)


uniform_dtype = _dtype_from_uniform_type(uniform_type)


def date_vector(date=None):
    """Get ``iDate``: year, month (1-12), day, seconds since midnight."""
    if date is None:
        date = datetime.datetime.now()
    if isinstance(date, datetime.datetime):
        seconds = (
            date.hour * 3600 + date.minute * 60 + date.second + date.microsecond / 1e6
        )
    else:
        seconds = 0.0
    return (date.year, date.month, date.day, seconds)


def create_uniforms(
    size,
    time=0.0,
    time_delta=0.0,
    frame=0,
    frame_rate=60.0,
    mouse=(0, 0, 0, 0),
    date=None,
):
    """Create the uniform data for rendering a frame.

    Parameters
    ----------
    size : tuple
        The (width, height) of the render target in pixels.
    time : float
        The logical time in seconds (``iTime``).
    time_delta : float
        The time since the previous frame (``iTimeDelta``).
    frame : int
        The frame number (``iFrame``).
    frame_rate : float
        The frame rate (``iFrameRate``).
    mouse : tuple
        The mouse state (``iMouse``): xy the current position while pressed,
        zw the position of the last click.
    date : datetime.date | datetime.datetime | None
        The date for ``iDate``. Default now.

    Returns a numpy structured array of shape ().
    """
    width, height = int(size[0]), int(size[1])
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid render size: {size}")
    if len(mouse) != 4:
        raise ValueError("The mouse state must have 4 elements.")

    data = np.zeros((), dtype=uniform_dtype)
    data["iResolution"] = width, height, width / height
    data["iTime"] = time
    data["iTimeDelta"] = time_delta
    data["iFrameRate"] = frame_rate
    data["iFrame"] = frame
    data["iDate"] = date_vector(date)
    data["iMouse"] = mouse
    return data
