"""图像格式相关常量定义。

基于 Pillow 的格式名与 MIME 类型映射，用于识别上传文件与压缩输出。
"""

from typing import Final


class ImageFormats:
    """图像格式映射"""

    ALIASES: Final[dict[str, str]] = {
        "JPG": "JPEG",
    }

    MIME_TYPES: Final[dict[str, str]] = {
        "JPEG": "image/jpeg",
        "PNG": "image/png",
        "WEBP": "image/webp",
        "GIF": "image/gif",
        "BMP": "image/bmp",
        "TIFF": "image/tiff",
        "HEIF": "image/heif",
        "AVIF": "image/avif",
    }

    # 有损重编码时需要先展平透明通道的模式
    FLATTEN_MODES: Final[set[str]] = {"CMYK", "YCbCr", "LAB", "HSV", "I", "F"}


class FieldDefaults:
    """评论表单中图片字段的默认约定"""

    IMAGES_FIELD: Final[str] = "images"
    IMAGES_FOLDER: Final[str] = "user-reviews"
    IMAGES_MAX_COUNT: Final[int] = 5


def get_format_alias(format_str: str) -> str:
    """获取格式的标准名称"""
    format_upper = format_str.upper()
    return ImageFormats.ALIASES.get(format_upper, format_upper)


def get_mime_type(format_str: str) -> str:
    """获取格式的MIME类型"""
    standard_format = get_format_alias(format_str)
    return ImageFormats.MIME_TYPES.get(
        standard_format, f"image/{standard_format.lower()}"
    )
