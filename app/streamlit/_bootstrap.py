# _bootstrap.py
# Put the project root (where 'core' and 'adapters' live) at the front of sys.path
# so pages can use absolute imports on Streamlit Cloud.

import sys
from pathlib import Path

for parent in Path(__file__).resolve().parents:
    if (parent / "core").is_dir() and (parent / "adapters").is_dir():
        if str(parent) not in sys.path:
            sys.path.insert(0, str(parent))
        break
