from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    MONGO_URL: str = Field(..., env="MONGO_URL")
    MONGO_DB: str = Field("techfest", env="MONGO_DB")
    REDIS_URL: str = Field(..., env="REDIS_URL")
    JWT_SECRET: str = Field(..., env="JWT_SECRET")
    JWT_ALGORITHM: str = Field("HS256", env="JWT_ALGORITHM")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(720, env="ACCESS_TOKEN_EXPIRE_MINUTES")
    ADMIN_EMAILS: str = Field("", env="ADMIN_EMAILS")
    ADMIN_CREATION_TOKEN: Optional[str] = Field(default=None, env="ADMIN_CREATION_TOKEN")
    GOOGLE_CLIENT_ID: Optional[str] = Field(default=None, env="GOOGLE_CLIENT_ID")
    LOGIN_ATTEMPTS_PER_HOUR: int = Field(20, env="LOGIN_ATTEMPTS_PER_HOUR")
    REGISTRATIONS_PER_DAY: int = Field(10, env="REGISTRATIONS_PER_DAY")
    REGISTRATION_ID_PREFIX: str = Field("TF2025", env="REGISTRATION_ID_PREFIX")
    PHONE_REGION: str = Field("IN", env="PHONE_REGION")
    EMAIL_API_URL: str = Field("http://localhost:5000/api", env="EMAIL_API_URL")
    EMAIL_API_TIMEOUT: int = Field(15, env="EMAIL_API_TIMEOUT")
    EMAIL_SEND_DELAY: float = Field(1.0, env="EMAIL_SEND_DELAY")
    SYNC_BATCH_SIZE: int = Field(400, env="SYNC_BATCH_SIZE")

    # certificate layout
    FEST_NAME: str = Field("TECH FIESTA '25", env="FEST_NAME")
    FEST_SLUG: str = Field("Tech-Fiesta-2025", env="FEST_SLUG")
    FEST_TAGLINE: str = Field("National-Level Tech Fest", env="FEST_TAGLINE")
    FEST_HIGHLIGHT: str = Field("Prize Pool Worth 1.5 Lakhs!", env="FEST_HIGHLIGHT")
    FEST_DATE: str = Field("30th July 2025", env="FEST_DATE")
    FEST_TIME: str = Field("8:00 AM - 3:00 PM", env="FEST_TIME")
    FEST_VENUE: str = Field("Chennai Institute of Technology, Kundrathur", env="FEST_VENUE")
    INSTITUTION_NAME: str = Field("Chennai Institute of Technology", env="INSTITUTION_NAME")
    CONTACT_EMAIL: str = Field("asymmetric@citchennai.net", env="CONTACT_EMAIL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def admin_emails(self) -> list:
        return [e.strip().lower() for e in self.ADMIN_EMAILS.split(",") if e.strip()]


settings = Settings()
