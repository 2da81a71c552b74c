"""统一配置管理模块。

提供图片接收流水线、对象存储和令牌生成的全局配置，支持环境变量覆盖。
"""

import os
from dataclasses import dataclass


MIB = 1024 * 1024


@dataclass(frozen=True)
class IntakeDefaults:
    """图片接收与压缩相关的默认配置"""

    # 单张图片的体积预算
    MAX_IMAGE_BYTES: int = 1 * MIB

    # 质量阶梯：90, 80, ..., 40
    START_QUALITY: int = 90
    QUALITY_STEP: int = 10
    MIN_QUALITY: int = 40

    # 有损重编码的目标格式
    OUTPUT_FORMAT: str = "WEBP"
    WEBP_METHOD: int = 4

    # 压缩并发设置
    MAX_WORKERS: int = 4
    EXECUTOR_TYPE: str | None = None  # 'thread' / 'process' / None 为自动选择

    @property
    def quality_ladder(self) -> tuple[int, ...]:
        """按尝试顺序排列的质量值"""
        return tuple(
            range(self.START_QUALITY, self.MIN_QUALITY - 1, -self.QUALITY_STEP)
        )


@dataclass(frozen=True)
class StorageDefaults:
    """对象存储相关的默认配置"""

    CLOUD_NAME: str = ""
    API_KEY: str = ""
    API_SECRET: str = ""
    API_BASE_URL: str = "https://api.cloudinary.com/v1_1"

    # 单次上传超时（秒），超时视为上传失败，不重试
    UPLOAD_TIMEOUT: float = 30.0

    DEFAULT_FOLDER: str = "user-reviews"

    @property
    def is_configured(self) -> bool:
        return bool(self.CLOUD_NAME and self.API_KEY and self.API_SECRET)


@dataclass(frozen=True)
class TokenDefaults:
    """评论令牌相关的默认配置"""

    MIN_VALUE: int = 100000
    MAX_VALUE: int = 999999
    MAX_ATTEMPTS: int = 100
    LENGTH: int = 6


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.intake = IntakeDefaults()
        self.storage = StorageDefaults()
        self.token = TokenDefaults()
        self.logging = LoggingDefaults()

        # 从环境变量加载配置
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        # 压缩配置
        if max_bytes := os.getenv("REVIEW_MAX_IMAGE_BYTES"):
            object.__setattr__(self.intake, "MAX_IMAGE_BYTES", int(max_bytes))

        if max_workers := os.getenv("REVIEW_MAX_WORKERS"):
            object.__setattr__(self.intake, "MAX_WORKERS", int(max_workers))

        if executor_type := os.getenv("REVIEW_EXECUTOR_TYPE"):
            object.__setattr__(self.intake, "EXECUTOR_TYPE", executor_type.lower())

        # 存储配置
        if cloud_name := os.getenv("CLOUDINARY_CLOUD_NAME"):
            object.__setattr__(self.storage, "CLOUD_NAME", cloud_name)

        if api_key := os.getenv("CLOUDINARY_API_KEY"):
            object.__setattr__(self.storage, "API_KEY", api_key)

        if api_secret := os.getenv("CLOUDINARY_API_SECRET"):
            object.__setattr__(self.storage, "API_SECRET", api_secret)

        if upload_timeout := os.getenv("REVIEW_UPLOAD_TIMEOUT"):
            object.__setattr__(self.storage, "UPLOAD_TIMEOUT", float(upload_timeout))

        # 令牌配置
        if max_attempts := os.getenv("REVIEW_TOKEN_MAX_ATTEMPTS"):
            object.__setattr__(self.token, "MAX_ATTEMPTS", int(max_attempts))

        # 日志配置
        if log_level := os.getenv("REVIEW_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
