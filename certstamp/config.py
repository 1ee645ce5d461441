"""
Runtime configuration, read from the environment (and a .env file if present).
"""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv


class Config:
    # Base URL for verification links baked into every QR code.
    # Set this to the public address of the deployment, not localhost.
    BASE_URL = "http://localhost:5001"
    SECRET_KEY = "change-this-in-production-use-env-var"
    DB_PATH = "certificates.db"
    CERTS_DIR = os.path.join("public", "certs")
    UPLOADS_DIR = os.path.join("public", "uploads")
    MAX_UPLOAD_MB = 10
    ACCESS_TOKEN_TTL = 3600
    LOG_LEVEL = "INFO"
    TESTING = False

    @classmethod
    def from_env(cls, env_file=None, **overrides):
        """
        Build a Config from environment variables, then apply *overrides*.

        A .env file next to the working directory is loaded first; real
        environment variables always win over it.
        """
        load_dotenv(env_file or Path.cwd() / ".env", override=False)

        config = cls()
        config.BASE_URL = os.environ.get("BASE_URL", cls.BASE_URL)
        config.SECRET_KEY = os.environ.get("SECRET_KEY", cls.SECRET_KEY)
        config.DB_PATH = os.environ.get("DB_PATH", cls.DB_PATH)
        config.CERTS_DIR = os.environ.get("CERTS_DIR", cls.CERTS_DIR)
        config.UPLOADS_DIR = os.environ.get("UPLOADS_DIR", cls.UPLOADS_DIR)
        config.MAX_UPLOAD_MB = int(os.environ.get("MAX_UPLOAD_MB", cls.MAX_UPLOAD_MB))
        config.ACCESS_TOKEN_TTL = int(os.environ.get("ACCESS_TOKEN_TTL", cls.ACCESS_TOKEN_TTL))
        config.LOG_LEVEL = os.environ.get("LOG_LEVEL", cls.LOG_LEVEL)

        for key, value in overrides.items():
            if not hasattr(cls, key):
                raise AttributeError(f"Unknown config option {key}")
            setattr(config, key, value)
        return config

    def to_flask(self):
        """Keys Flask itself understands, plus ours under their own names."""
        settings = {k: getattr(self, k) for k in dir(self) if k.isupper()}
        settings["MAX_UPLOAD_BYTES"] = self.MAX_UPLOAD_MB * 1024 * 1024
        # room for the form fields that travel with the file
        settings["MAX_CONTENT_LENGTH"] = settings["MAX_UPLOAD_BYTES"] + 64 * 1024
        return settings


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
