from pydantic import BaseModel, EmailStr, validator
from typing import Optional, Literal
from uuid import UUID

# bcrypt limit in bytes
MAX_BCRYPT_BYTES = 72


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = None
    role: Literal["epc", "subcontractor"]
    # EPC users join an existing buyer company or create one named company_name;
    # sub-contractors get a profile named company_name
    company_id: Optional[UUID] = None
    company_name: Optional[str] = None

    @validator("password")
    def password_byte_length(cls, v: str):
        if len(v.encode("utf-8")) > MAX_BCRYPT_BYTES:
            raise ValueError(f"password must be at most {MAX_BCRYPT_BYTES} bytes")
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str
    user_id: str
    role: str
