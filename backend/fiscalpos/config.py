# backend/fiscalpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the working directory unless DATABASE_URL says otherwise
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///fiscalpos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Issuer identity used when an invoice does not name its own codes
    ESTABLISHMENT_CODE = os.environ.get("ESTABLISHMENT_CODE", "001")
    EMISSION_POINT_CODE = os.environ.get("EMISSION_POINT_CODE", "001")

    # Issuer tax-registration ID (13 digits) embedded in every access key
    ISSUER_TAX_ID = os.environ.get("ISSUER_TAX_ID", "1790012344001")

    # Access key environment digit: 1 = test, 2 = production
    ACCESS_KEY_ENVIRONMENT = os.environ.get("ACCESS_KEY_ENVIRONMENT", "1")

    # Emission type digit embedded in every access key (1 = normal emission)
    ACCESS_KEY_EMISSION_TYPE = "1"

    # How long a SQLite writer waits on the database lock before failing
    SQLITE_BUSY_TIMEOUT_SECONDS = int(os.environ.get("SQLITE_BUSY_TIMEOUT_SECONDS", "30"))
