"""图片接收数据模型。

定义一次请求中上传图片的输入描述、压缩尝试与上传结果。
"""

from pydantic import BaseModel, Field, field_validator


class FieldSpec(BaseModel):
    """表单图片字段描述"""

    field_name: str = Field(min_length=1, description="表单字段名")
    folder: str = Field(min_length=1, description="远端存储的逻辑目录")
    max_count: int = Field(1, ge=1, description="该字段最多接收的文件数")

    @field_validator("folder")
    @classmethod
    def strip_folder_slashes(cls, v: str) -> str:
        folder = v.strip("/")
        if not folder:
            raise ValueError("folder 不能为空")
        return folder


class ImageAsset(BaseModel):
    """单个上传文件，处理完成后即丢弃"""

    field_name: str = Field(description="所属表单字段")
    raw_bytes: bytes = Field(repr=False, description="原始文件内容")
    mime_hint: str = Field("application/octet-stream", description="客户端声明的类型")

    @property
    def size(self) -> int:
        return len(self.raw_bytes)


class CompressionAttempt(BaseModel):
    """一次按质量重编码的尝试"""

    quality: int = Field(ge=1, le=100, description="使用的质量值")
    result_bytes: bytes = Field(repr=False, description="编码结果")
    result_size: int = Field(ge=0, description="编码结果大小（字节）")

    @classmethod
    def from_bytes(cls, quality: int, data: bytes) -> "CompressionAttempt":
        return cls(quality=quality, result_bytes=data, result_size=len(data))


class UploadResult(BaseModel):
    """远端存储返回的引用"""

    url: str = Field(description="可公开访问的绝对地址")
    folder: str = Field(description="上传时使用的逻辑目录")
    public_id: str | None = Field(None, description="存储端资源标识")
    size: int | None = Field(None, description="存储端记录的字节数")
