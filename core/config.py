import os
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Configs(BaseSettings):

    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "revscope")

    API: str = "/api"
    API_V1_STR: str = "/api/v1"

    # repository served at startup
    REPO_PATH: str = os.getenv("REPO_PATH", os.getcwd())

    # server
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "3001"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    # history / diff
    DEFAULT_COMMIT_LIMIT: int = int(os.getenv("DEFAULT_COMMIT_LIMIT", "50"))
    DIFF_CONTEXT_LINES: int = 3
    WORKING_TREE_ID: str = "WORKING_TREE"

    class Config:
        case_sensitive = True


configs = Configs()
