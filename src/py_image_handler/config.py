"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
"""

import os
from dataclasses import dataclass
from typing import Any


def _env_flag(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class ServerDefaults:
    """HTTP 服务相关的默认配置"""

    HOST: str = "0.0.0.0"
    PORT: int = 8080


@dataclass(frozen=True)
class StorageDefaults:
    """原图存储相关的默认配置"""

    # local: 本地目录；s3: S3 存储桶
    BACKEND: str = "local"
    LOCAL_ROOT: str = "images"
    S3_BUCKET: str = ""
    REGION: str = "us-east-1"

    # 无处理参数的请求直接拒绝，让 CDN 回源到存储
    BYPASS_RAW_FETCH: bool = False


@dataclass(frozen=True)
class ProcessingDefaults:
    """图像处理相关的默认配置"""

    # 根据 Accept 头自动输出 WebP
    AUTO_WEBP: bool = False

    # 编码参数
    JPEG_QUALITY: int = 80
    PNG_QUALITY: int = 80
    PNG_EFFORT: int = 2
    WEBP_QUALITY: int = 80
    WEBP_EFFORT: int = 2

    # 文字水印字体，None 使用 Pillow 内置字体
    WATERMARK_FONT: str | None = None

    def get_encoder_options(self, format_name: str) -> dict[str, Any]:
        """获取格式对应的编码参数"""
        options = {
            "jpeg": {"quality": self.JPEG_QUALITY},
            "png": {"quality": self.PNG_QUALITY, "effort": self.PNG_EFFORT},
            "webp": {"quality": self.WEBP_QUALITY, "effort": self.WEBP_EFFORT},
        }
        return options.get(format_name, {})


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    # 日志级别
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 文件日志
    ENABLE_FILE_LOGGING: bool = False
    LOG_FILE_PATH: str = "py_image_handler.log"
    LOG_FILE_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUP_COUNT: int = 5


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.server = ServerDefaults()
        self.storage = StorageDefaults()
        self.processing = ProcessingDefaults()
        self.logging = LoggingDefaults()

        # 从环境变量加载配置
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        # 服务配置
        if host := os.getenv("PIH_HOST"):
            object.__setattr__(self.server, "HOST", host)

        if port := os.getenv("PIH_PORT"):
            object.__setattr__(self.server, "PORT", int(port))

        # 存储配置
        if backend := os.getenv("PIH_STORAGE_BACKEND"):
            object.__setattr__(self.storage, "BACKEND", backend.lower())

        if local_root := os.getenv("PIH_LOCAL_ROOT"):
            object.__setattr__(self.storage, "LOCAL_ROOT", local_root)

        if bucket := os.getenv("PIH_S3_BUCKET"):
            object.__setattr__(self.storage, "S3_BUCKET", bucket)

        if region := os.getenv("PIH_REGION"):
            object.__setattr__(self.storage, "REGION", region)

        if bypass := os.getenv("PIH_BYPASS_RAW_FETCH"):
            object.__setattr__(self.storage, "BYPASS_RAW_FETCH", _env_flag(bypass))

        # 处理配置
        if auto_webp := os.getenv("PIH_AUTO_WEBP"):
            object.__setattr__(self.processing, "AUTO_WEBP", _env_flag(auto_webp))

        if font := os.getenv("PIH_WATERMARK_FONT"):
            object.__setattr__(self.processing, "WATERMARK_FONT", font)

        # 日志配置
        if log_level := os.getenv("PIH_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())

        if enable_file_log := os.getenv("PIH_ENABLE_FILE_LOGGING"):
            object.__setattr__(
                self.logging, "ENABLE_FILE_LOGGING", _env_flag(enable_file_log)
            )


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
