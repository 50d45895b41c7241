"""Configuration schemas."""

from typing import Any

from pydantic import BaseModel, Field


class ConfigValueResponse(BaseModel):
    key: str
    value: Any


class ConfigUpdate(BaseModel):
    value: Any


class RegistrationAmountResponse(BaseModel):
    amount: int


class ConferenceDetails(BaseModel):
    name: str
    date: str
    venue: str
    theme: str | None = None
    bank_name: str | None = None
    account_number: str | None = None
    account_name: str | None = None


class ConferenceDetailsUpdate(BaseModel):
    name: str | None = Field(None, max_length=300)
    date: str | None = Field(None, max_length=100)
    venue: str | None = Field(None, max_length=300)
    theme: str | None = Field(None, max_length=500)
    bank_name: str | None = Field(None, max_length=100)
    account_number: str | None = Field(None, pattern=r"^\d{10}$")
    account_name: str | None = Field(None, max_length=200)
