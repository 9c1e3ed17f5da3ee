import io

import numpy as np
import pytest
from PIL import Image

from school_billing.input_handler import ImagePreprocessor, load_image
from school_billing.utils.exceptions import CorruptedFileError

from conftest import make_image_bytes


@pytest.fixture
def preprocessor():
    return ImagePreprocessor()


def test_output_is_rgb_black_and_white(preprocessor):
    raster = preprocessor.preprocess(make_image_bytes(color=(30, 200, 90)))
    pixels = np.asarray(raster)

    assert raster.mode == "RGB"
    assert set(np.unique(pixels)) <= {0, 255}
    assert (pixels[..., 0] == pixels[..., 1]).all()
    assert (pixels[..., 1] == pixels[..., 2]).all()


def test_contrast_and_threshold(preprocessor):
    # 140 stretches to 143.6 (black); 200 stretches to 221.6 (white)
    dark = np.asarray(preprocessor.preprocess(make_image_bytes(color=(140, 140, 140))))
    light = np.asarray(preprocessor.preprocess(make_image_bytes(color=(200, 200, 200))))

    assert (dark == 0).all()
    assert (light == 255).all()


def test_large_image_is_downscaled_to_max_dimension(preprocessor):
    raster = preprocessor.preprocess(make_image_bytes(size=(3600, 1200)))
    assert raster.size == (1800, 600)


def test_small_image_is_never_upscaled(preprocessor):
    raster = preprocessor.preprocess(make_image_bytes(size=(100, 50)))
    assert raster.size == (100, 50)


def test_extreme_aspect_ratio_keeps_one_pixel(preprocessor):
    raster = preprocessor.preprocess(make_image_bytes(size=(4000, 1)))
    assert raster.size == (1800, 1)


def test_transparent_pixels_become_white(preprocessor):
    data = make_image_bytes(mode="RGBA", color=(0, 0, 0, 0))
    pixels = np.asarray(preprocessor.preprocess(data))
    assert (pixels == 255).all()


def test_exif_orientation_is_applied(preprocessor):
    exif = Image.Exif()
    exif[0x0112] = 6  # rotated 90 degrees
    data = make_image_bytes(size=(200, 100), fmt="JPEG", exif=exif)

    assert preprocessor.preprocess(data).size == (100, 200)


def test_preprocessing_is_deterministic(preprocessor):
    data = make_image_bytes(size=(640, 480), color=(120, 160, 140))
    first = preprocessor.preprocess(data).tobytes()
    second = preprocessor.preprocess(data).tobytes()
    assert first == second


def test_load_image_accepts_paths_and_streams(tmp_path):
    path = tmp_path / "receipt.png"
    path.write_bytes(make_image_bytes(size=(10, 20)))

    assert load_image(str(path)).size == (10, 20)
    assert load_image(io.BytesIO(path.read_bytes())).size == (10, 20)


def test_corrupt_bytes_raise(preprocessor):
    with pytest.raises(CorruptedFileError):
        preprocessor.preprocess(b"definitely not an image")
