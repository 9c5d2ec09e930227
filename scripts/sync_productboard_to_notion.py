"""
Entry point para cron / CI sin instalar el paquete.

  python scripts/sync_productboard_to_notion.py [--dry-run] [--export-source]
"""

from __future__ import annotations

import sys
from pathlib import Path

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from roadmap_sync.cli import main

if __name__ == "__main__":
    sys.exit(main())
