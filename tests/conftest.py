import os
import tempfile

# config.py reads these at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ["ENV"] = "testing"
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "jordanmarket-test-logs"))
