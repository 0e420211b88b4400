# env_config.py
import os
from dotenv import load_dotenv

# Automatically loads .env from same folder or parent folders
load_dotenv()

def get_env(key: str, default: str = "") -> str:
    return os.getenv(key, default)


def get_env_float(key: str, default: float) -> float:
    raw = (get_env(key, "") or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default
