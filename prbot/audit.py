from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from prbot.config import Config, get_config


def append_audit(event: Dict[str, Any], config: Optional[Config] = None) -> None:
    """Append one JSON line to the audit file, if auditing is enabled."""
    config = config or get_config()
    if not config.audit_enabled:
        return
    path = Path(config.audit_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    enriched = {"ts": datetime.now(timezone.utc).isoformat(), **event}
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(enriched, ensure_ascii=False, default=str) + "\n")
