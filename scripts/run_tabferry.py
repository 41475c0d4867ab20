#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[tabferry] mode={os.environ.get('TABFERRY_BROWSER_MODE', 'attach')} | "
    f"port={os.environ.get('TABFERRY_CDP_PORT', '9222')} | "
    f"store={os.environ.get('TABFERRY_STORE_PATH', '~/.tabferry/store.json')}",
    file=sys.stderr,
)

from tabferry.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:] or ["watch"]))
