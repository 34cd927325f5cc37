import io

import pytest
from PIL import Image

from euterpe.scaler import Scaler, ScalerCancelledError

TEXT = b"not actually an image but OK"


def _png(width, height, color=(100, 100, 100, 255)):
    img = Image.new("RGBA", (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def test_scaler_simple_image():
    with Scaler() as sclr:
        data = sclr.scale(_png(150, 200), 50, timeout=5)

    scaled = Image.open(io.BytesIO(data))
    assert scaled.format == "JPEG"
    assert scaled.size[0] == 50
    assert scaled.size[1] < 200


def test_scaler_accepts_bytes():
    raw = _png(80, 80).getvalue()
    with Scaler(workers=1) as sclr:
        data = sclr.scale(raw, 20, timeout=5)
    assert Image.open(io.BytesIO(data)).size == (20, 20)


def test_square_image_stays_square():
    with Scaler(workers=2) as sclr:
        data = sclr.scale(_png(300, 300), 60, timeout=5)
    assert Image.open(io.BytesIO(data)).size == (60, 60)


def test_scaling_non_image_causes_an_error():
    with Scaler() as sclr:
        with pytest.raises(ValueError) as excinfo:
            sclr.scale(io.BytesIO(b"definitely not an image"), 100, timeout=5)
    assert "decoding image" in str(excinfo.value)


def test_scaler_cancelled_by_method():
    sclr = Scaler()
    sclr.cancel()
    buf = io.BytesIO(TEXT)

    with pytest.raises(ScalerCancelledError):
        sclr.scale(buf, 200)

    assert buf.read() == TEXT
    assert sclr.cancelled is True


def test_scaler_cancelled_by_context():
    with Scaler() as sclr:
        pass
    buf = io.BytesIO(TEXT)

    with pytest.raises(ScalerCancelledError):
        sclr.scale(buf, 200)

    assert buf.read() == TEXT
    assert sclr.cancelled is True


def test_cancel_is_idempotent():
    sclr = Scaler(workers=1)
    sclr.cancel()
    sclr.cancel()
    with pytest.raises(ScalerCancelledError):
        sclr.scale(b"", 10)