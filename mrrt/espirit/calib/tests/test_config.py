import pytest

from mrrt.espirit.calib import EcalibConfig, ecalib_defaults


def test_defaults():
    assert ecalib_defaults.kernel_shape == (6, 6, 6)
    assert ecalib_defaults.threshold == 0.001
    assert ecalib_defaults.numsv == -1
    assert ecalib_defaults.percentsv == -1
    assert ecalib_defaults.crop == 0.8
    assert not ecalib_defaults.intensity
    assert ecalib_defaults.rotphase
    assert ecalib_defaults.perturb == -1
    assert ecalib_defaults.orthiter
    assert not ecalib_defaults.softcrop
    assert not ecalib_defaults.weighting
    assert ecalib_defaults.kernel_method == "gram"
    assert ecalib_defaults.kernel_order == "signal"
    assert ecalib_defaults.validate() is ecalib_defaults
    assert EcalibConfig() == ecalib_defaults


def test_read_only():
    with pytest.raises(AttributeError):
        ecalib_defaults.crop = 0.5
    conf = ecalib_defaults._replace(crop=0.5)
    assert conf.crop == 0.5
    assert ecalib_defaults.crop == 0.8


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(numsv=10),
        dict(percentsv=50.0),
        dict(numsv=10, percentsv=50.0, threshold=-1),
        dict(threshold=-1),
    ],
)
def test_selector_exclusive(kwargs):
    with pytest.raises(ValueError):
        ecalib_defaults._replace(**kwargs).validate()


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(numsv=10, threshold=-1),
        dict(percentsv=50.0, threshold=-1),
        dict(threshold=0.01),
    ],
)
def test_selector_valid(kwargs):
    ecalib_defaults._replace(**kwargs).validate()


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(kernel_shape=(6, 6)),
        dict(kernel_shape=(6, 0, 1)),
        dict(kernel_method="qr"),
        dict(kernel_order="reverse"),
        dict(orthiter_iterations=0),
    ],
)
def test_invalid_options(kwargs):
    with pytest.raises(ValueError):
        ecalib_defaults._replace(**kwargs).validate()
