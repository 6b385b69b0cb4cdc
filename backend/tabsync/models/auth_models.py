from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional


class UserRegistrationRequest(BaseModel):
    """Request model for user registration"""
    username: str = Field(..., min_length=1, max_length=50, description="Unique account name")
    email: str = Field(..., min_length=3, max_length=254, description="Contact email")

    @field_validator('username', 'email')
    @classmethod
    def strip_value(cls, v):
        if not v.strip():
            raise ValueError('Value cannot be empty or whitespace only')
        return v.strip()


class RegistrationResponse(BaseModel):
    """Response model for successful registration"""
    message: str = "Registration successful. Scan the QR code."
    username: str
    otpauth_url: str = Field(..., description="otpauth:// URI to render as a QR code")
    secret: str = Field(..., description="Base32 TOTP secret for manual entry")


class VerifyRequest(BaseModel):
    """Request model for OTP verification and login"""
    username: str = Field(..., min_length=1, max_length=50)
    otp: str = Field(..., min_length=6, max_length=10, description="Current TOTP code")


class LoginResponse(BaseModel):
    """Response model for successful login"""
    message: str
    session_token: str
    tabs: List[Dict[str, Any]] = Field(default_factory=list, description="Active tabs to restore")


class UsernameRequest(BaseModel):
    """Request model for account-level operations"""
    username: str = Field(..., min_length=1, max_length=50)


class MessageResponse(BaseModel):
    message: str
    username: Optional[str] = None
