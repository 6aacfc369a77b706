from typing import Optional
from pydantic import BaseModel

class UploadRequest(BaseModel):
    nama_pahlawan: Optional[str] = None
    filename: Optional[str] = None
    mime: Optional[str] = None
    data_url: Optional[str] = None

class IndexRecord(BaseModel):
    nama_pahlawan: str
    image_url: str
    uploaded_at: str

class UploadResponse(BaseModel):
    ok: bool = True
    nama_pahlawan: str
    image_url: str
    json_path: str
    commit_url: Optional[str] = None

class ErrorResponse(BaseModel):
    error: str
