# metadata.py
from __future__ import annotations

import hashlib
import json
import time
from pathlib import Path
from typing import Dict, Optional

from .model import Job

# ---------------------------------------------------------------------
# Per-output job metadata
# ---------------------------------------------------------------------
# After a job succeeds, one record is written per output file:
#
#   {
#     "v": 1,
#     "output": "results/a.txt",
#     "rule": "count",
#     "fingerprint": sha256 of the rule's action definition,
#     "inputs": ["data/a.csv", ...],
#     "recorded_at_unix": 1700000000
#   }
#
# The staleness oracle compares these against the current rule definition
# and resolved inputs to detect "the workflow itself changed".
# ---------------------------------------------------------------------

RECORD_VERSION = 1


class MetadataStore:
    """
    File-based metadata store:
      root/
        <sha256(output path)>.json
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def record_path(self, output: str) -> Path:
        digest = hashlib.sha256(output.encode("utf-8")).hexdigest()
        return self.root / f"{digest}.json"

    def record(self, job: Job) -> None:
        """Persist the rule fingerprint and input set for every output of job."""
        self.root.mkdir(parents=True, exist_ok=True)
        fingerprint = job.rule.fingerprint()
        now = int(time.time())
        for output in job.outputs:
            payload = {
                "v": RECORD_VERSION,
                "output": output,
                "rule": job.rule.name,
                "fingerprint": fingerprint,
                "inputs": list(job.inputs),
                "recorded_at_unix": now,
            }
            path = self.record_path(output)
            tmp = path.with_suffix(".json.tmp")
            try:
                # write to tmp, then atomic rename
                tmp.write_text(json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False), encoding="utf-8")
                tmp.replace(path)
            finally:
                if tmp.exists():
                    tmp.unlink(missing_ok=True)

    def load(self, output: str) -> Optional[Dict]:
        path = self.record_path(output)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(data, dict) or data.get("output") != output:
            return None
        return data

    def forget(self, output: str) -> None:
        self.record_path(output).unlink(missing_ok=True)
