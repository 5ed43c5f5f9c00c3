"""Client-style smoke test for a running bracket service.

- Uses stdlib-only HTTP client in tools/ci/bracket_http.py
- Exercises: /validate (balanced, not balanced, bad string) and /fix

Env vars:
- BRACKET_API_BASE_URL
- BRACKET_API_KEY (optional)

Exit codes:
- 0: every check matched
- 1: error
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[2]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from tools.ci.bracket_http import post_json

CHECKS = [
    ("/validate", "([{}])", {"v": "Balanced"}),
    ("/validate", "(]", {"v": "Not Balanced"}),
    ("/validate", "a", {"err": "bad string"}),
    ("/fix", "([)]", {"v": "([()])"}),
    ("/fix", ")", {"v": "()"}),
]


def main() -> int:
    failures = []
    for path, text, expected in CHECKS:
        try:
            resp = post_json(path, {"s": text})
        except RuntimeError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        mismatched = {k: resp.get(k) for k, v in expected.items() if resp.get(k) != v}
        print(json.dumps({"path": path, "s": text, "response": resp}))
        if mismatched:
            failures.append((path, text, mismatched))

    if failures:
        print(f"ERROR: unexpected responses: {failures}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
