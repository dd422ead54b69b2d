import datetime

import numpy as np
from pytest import raises

from shaderpass.renderers.uniforms import (
    create_uniforms,
    date_vector,
    uniform_dtype,
    uniform_type,
)


def test_uniform_dtype():
    assert uniform_dtype.names == tuple(uniform_type)
    assert uniform_dtype["iResolution"].shape == (3,)
    assert uniform_dtype["iMouse"].shape == (4,)
    assert uniform_dtype["iFrame"] == np.int32
    assert uniform_dtype["iTime"] == np.float32
    assert uniform_dtype.itemsize == 60


def test_create_uniforms():
    date = datetime.datetime(2024, 5, 17, 1, 2, 3)
    data = create_uniforms(
        (400, 300), time=1.5, time_delta=0.25, frame=3, mouse=(1, 2, 3, 4), date=date
    )

    assert data.shape == ()
    assert np.allclose(data["iResolution"], [400, 300, 400 / 300])
    assert data["iTime"] == 1.5
    assert data["iTimeDelta"] == 0.25
    assert data["iFrameRate"] == 60.0
    assert data["iFrame"] == 3
    assert data["iDate"].tolist() == [2024, 5, 17, 3723]
    assert data["iMouse"].tolist() == [1, 2, 3, 4]


def test_create_uniforms_defaults():
    data = create_uniforms((40, 30))
    assert data["iTime"] == 0
    assert data["iFrame"] == 0
    assert data["iMouse"].tolist() == [0, 0, 0, 0]
    assert data["iDate"][0] >= 2024


def test_create_uniforms_invalid():
    with raises(ValueError):
        create_uniforms((0, 30))
    with raises(ValueError):
        create_uniforms((40, 30), mouse=(1, 2, 3))


def test_date_vector():
    assert date_vector(datetime.date(2024, 1, 2)) == (2024, 1, 2, 0.0)
    year, month, day, seconds = date_vector()
    assert 1 <= month <= 12
    assert 0 <= seconds < 86400
