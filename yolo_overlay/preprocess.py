import numpy as np

from .engine import ModelMetadata


def rotate_upright(image: np.ndarray, rotation_degrees: int) -> np.ndarray:
    """
    Rotate clockwise by `rotation_degrees` (a multiple of 90), the rotation a
    camera reports as needed to make its frame upright.
    """

    if rotation_degrees % 90 != 0:
        raise ValueError(f"rotation_degrees must be a multiple of 90, got {rotation_degrees}")
    k = (rotation_degrees // 90) % 4
    if k == 0:
        return image
    return np.ascontiguousarray(np.rot90(image, k=-k))


def prepare_input(image_bgr: np.ndarray, metadata: ModelMetadata, rotation_degrees: int = 0) -> np.ndarray:
    """
    Convert an OpenCV BGR frame into the model's input tensor.

    Steps: rotate upright, resize (bilinear, no padding) to the model input,
    BGR -> RGB, scale to [0, 1] float32, add batch axis in the model's layout.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for prepare_input(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    width, height = metadata.input_size
    if width <= 0 or height <= 0:
        raise ValueError(f"Model input size is unknown for input shape {metadata.input_shape}")

    img = rotate_upright(image_bgr, rotation_degrees)
    h, w = img.shape[:2]
    if (w, h) != (width, height):
        img = cv2.resize(img, (width, height), interpolation=cv2.INTER_LINEAR)

    blob = img[:, :, ::-1].astype(np.float32) / 255.0
    if metadata.input_layout == "nchw":
        blob = np.transpose(blob, (2, 0, 1))
    return np.ascontiguousarray(blob[None, ...])
