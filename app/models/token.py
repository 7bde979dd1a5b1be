from pydantic import BaseModel, Field


class TokensDocument(BaseModel):
    blacklisted_tokens: set[str] = Field(default_factory=set)
    # device id -> ids of tokens issued to that device and still live
    device_tokens: dict[str, set[str]] = Field(default_factory=dict)
