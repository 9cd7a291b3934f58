import os
import sys


# Ensure `src/backend` is on sys.path so `common`, `adapters` and `scripts` import without an
# editable install (e.g. when pytest's rootdir is the repository root).
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)
