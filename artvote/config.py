# env vars + constants
import os


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


HOST = os.getenv("HOST", "localhost")
PORT = int(os.getenv("PORT", "8080"))
DEBUG = _flag("DEBUG")

ITERATION_FILE = os.getenv("ITERATION_FILE", "iteration")
IMAGES_DIR = os.getenv("IMAGES_DIR", "images")
SOURCE_IMAGES = os.getenv("SOURCE_IMAGES", "test_images")
IMAGES_PER_ITERATION = int(os.getenv("IMAGES_PER_ITERATION", "10"))

CYCLE_ENABLED = _flag("CYCLE_ENABLED", "true")
# console | timer | manual
CYCLE_TRIGGER = os.getenv("CYCLE_TRIGGER", "console")
CYCLE_INTERVAL = float(os.getenv("CYCLE_INTERVAL", "60.0"))

# votes are never cleared between iterations unless this is set
RESET_VOTES_ON_ADVANCE = _flag("RESET_VOTES_ON_ADVANCE")
ENFORCE_ITERATION = _flag("ENFORCE_ITERATION")
