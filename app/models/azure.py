from typing import Optional, Any
from pydantic import BaseModel


class AzureConnection(BaseModel):
    organization_url: str
    pat_token: str
    project: str
    iteration_path: Optional[str] = None

    @property
    def base_url(self) -> str:
        return self.organization_url.rstrip("/")


class JsonPatchOperation(BaseModel):
    op: str = "add"
    path: str
    value: Any
