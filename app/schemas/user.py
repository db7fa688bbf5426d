# app/schemas/user.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel


# Клиент шлет и получает camelCase (firstName, walletAddress, ...)
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class SignupRequest(CamelModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    country: str = Field(..., min_length=2, max_length=50)
    state: str = Field(..., min_length=2, max_length=50)
    city: str = Field(..., min_length=2, max_length=50)
    dob: str
    address: str = Field(..., min_length=5, max_length=1000)
    zip_code: str
    ibi_name: str = Field(..., min_length=2, max_length=100)
    ibi_id: str = Field(..., min_length=5, max_length=20, pattern=r"^[A-Za-z0-9]+$")
    referral_code: str | None = None

class VerifyOtpRequest(CamelModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6)

class ResendOtpRequest(CamelModel):
    email: EmailStr

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8)

class ChangePasswordRequest(CamelModel):
    old_password: str = Field(..., min_length=8)
    new_password: str = Field(..., min_length=8)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Confirm Password must match New Password")
        return self

class WalletAddressUpdate(CamelModel):
    address: str = Field(..., min_length=5, max_length=200)


# --- Ответы ---

class MessageResponse(BaseModel):
    message: str

class UserSummary(CamelModel):
    """Краткие данные пользователя, отдаются при логине."""
    id: int
    first_name: str
    last_name: str
    email: EmailStr
    country: str | None = None
    state: str | None = None
    city: str | None = None
    referral_code: str | None = None
    wallet_address: str | None = None

class LoginResponse(BaseModel):
    user: UserSummary
    token: str
    token_type: str = "bearer"

class UserProfile(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: EmailStr
    country: str | None = None
    state: str | None = None
    city: str | None = None
    role: str
    is_verified: bool
    ibi_name: str | None = None
    ibi_id: str | None = None
    referral_code: str | None = None
    wallet_address: str | None = None
    document_id: str | None = None
    document_front_image: str | None = None
    document_back_image: str | None = None
