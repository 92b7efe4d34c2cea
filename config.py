import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Settings read from the environment (and an optional .env file)."""

    APP_TITLE = os.environ.get("APP_TITLE") or "Club Equipment Lending"
    CLUB_NAME = os.environ.get("CLUB_NAME") or "the Robotics Club"
    LOG_LEVEL = os.environ.get("LOG_LEVEL") or "INFO"

    # remote: ask the language model; off: every purpose passes
    SANITY_CHECK_MODE = (os.environ.get("SANITY_CHECK_MODE") or "remote").lower()
    SANITY_CHECK_API_KEY = os.environ.get("GEMINI_API_KEY")
    SANITY_CHECK_MODEL = os.environ.get("SANITY_CHECK_MODEL") or "gemini-2.0-flash"
    SANITY_CHECK_URL = (
        os.environ.get("SANITY_CHECK_URL")
        or "https://generativelanguage.googleapis.com/v1beta"
    )
    SANITY_CHECK_TIMEOUT = float(os.environ.get("SANITY_CHECK_TIMEOUT") or 15)
