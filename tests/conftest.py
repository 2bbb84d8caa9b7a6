import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make the sources importable without an editable install.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
