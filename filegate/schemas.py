from typing import List

from pydantic import BaseModel, ConfigDict, field_validator


class CredentialRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    password: str


class CredentialFile(BaseModel):
    users: List[CredentialRecord]


class AppConfig(BaseModel):
    server_host: str
    server_port: int
    file_dir: str
    user_file: str

    @field_validator("server_host", "file_dir", "user_file")
    @classmethod
    def non_empty(cls, v, info):
        if not v.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return v

    @field_validator("server_port")
    @classmethod
    def port_range(cls, v):
        if v < 1 or v > 65535:
            raise ValueError("server_port must be between 1 and 65535")
        return v

    @property
    def address(self) -> str:
        return f"{self.server_host}:{self.server_port}"
