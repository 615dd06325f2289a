"""Pydantic models describing one build invocation."""

from __future__ import annotations

import keyword
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Accepted credential spellings mapped onto boto3 session/client keywords.
CREDENTIAL_KEYS: Dict[str, str] = {
    "aws_access_key_id": "aws_access_key_id",
    "accessKeyId": "aws_access_key_id",
    "aws_secret_access_key": "aws_secret_access_key",
    "secretAccessKey": "aws_secret_access_key",
    "aws_session_token": "aws_session_token",
    "sessionToken": "aws_session_token",
    "region_name": "region_name",
    "region": "region_name",
    "profile_name": "profile_name",
    "profile": "profile_name",
    "endpoint_url": "endpoint_url",
    "endpoint": "endpoint_url",
}


class DeploySpec(BaseModel):
    credentials: Dict[str, Any] = Field(
        default_factory=dict,
        alias="config",
        description="Connection settings for the Lambda client; empty uses the default credential chain.",
    )
    function_name: str = Field(..., alias="name", min_length=1)
    execution_role: str = Field(..., alias="role", min_length=1, description="IAM role ARN assumed by the function.")
    overwrite: bool = False
    runtime: str = "python3.12"
    handler: Optional[str] = Field(default=None, description="Overrides the '<module>.<export>' handler string.")
    timeout: Optional[int] = Field(default=None, ge=1, le=900)
    memory_size: Optional[int] = Field(default=None, alias="memory", ge=128, le=10240)
    description: Optional[str] = None
    environment: Dict[str, str] = Field(default_factory=dict)
    publish: bool = False
    connect_timeout: float = Field(default=60, gt=0)
    read_timeout: float = Field(default=60, gt=0)

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @field_validator("credentials")
    @classmethod
    def _check_credentials(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        unknown = sorted(key for key in value if key not in CREDENTIAL_KEYS)
        if unknown:
            raise ValueError(f"Unsupported credential keys: {', '.join(unknown)}")
        return value

    def client_settings(self) -> Dict[str, Any]:
        """Return credentials normalised to boto3 keyword names."""

        return {CREDENTIAL_KEYS[key]: value for key, value in self.credentials.items() if value is not None}


class BuildRequest(BaseModel):
    entry_path: Path = Field(..., alias="entry")
    export_name: str = Field(..., alias="export")
    minify: bool = False
    sourcemap_name: Optional[str] = Field(
        default=None,
        alias="sourcemap",
        description="Requests a source map for the minified bundle.",
    )
    additional_files: List[Path] = Field(default_factory=list, alias="files")
    output_path: Optional[Path] = Field(default=None, alias="output")
    deploy: Optional[DeploySpec] = None

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @field_validator("export_name")
    @classmethod
    def _check_export(cls, value: str) -> str:
        if not value.isidentifier() or keyword.iskeyword(value):
            raise ValueError(f"Export name must be a Python identifier (got '{value}')")
        return value

    @field_validator("sourcemap_name")
    @classmethod
    def _check_sourcemap(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("Source map name must not be blank")
        return value

    @property
    def archive_name(self) -> str:
        return self.entry_path.name

    @property
    def handler(self) -> str:
        if self.deploy and self.deploy.handler:
            return self.deploy.handler
        return f"{self.entry_path.stem}.{self.export_name}"

    @property
    def wants_sourcemap(self) -> bool:
        return self.minify and self.sourcemap_name is not None
