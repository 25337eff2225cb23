from __future__ import annotations

import pytest

WELL_STRUCTURED = """### Goal
Add a read-through cache to the orders API in src/orders/service.py.

### Constraints
- Must keep responses deterministic for identical requests.
- Do not change the public HTTP contract.

### Deliverables
1. A cache module with TTL eviction.
2. Unit tests for hit and miss paths.
3. A validation report with benchmark numbers.

### Output Format
Return a markdown summary followed by a unified diff.

### Questions
- Which TTL should production use?

### Success Criteria
- All existing tests pass.
- Cache hit ratio above 80 percent in the benchmark."""

PROTECTED_INPUT = """could you fix the parser in src/app/parser.py for {ticket}
See https://example.com/docs/parser for the grammar.
```python
def parse(text):
    return text.split()
```"""


@pytest.fixture
def well_structured() -> str:
    """A prompt that already carries every gate section in canonical order."""
    return WELL_STRUCTURED


@pytest.fixture
def protected_input() -> str:
    """A weak prompt carrying a code fence, a path, a URL and a placeholder."""
    return PROTECTED_INPUT
