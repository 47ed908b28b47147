"""
Agents package for the dispute consultation project.

Import `DisputeAgent` directly from here to simplify access:

```python
from agents import DisputeAgent

agent = DisputeAgent()
result = agent.analyze(form)
```
"""

from .dispute_agent import AnalysisError, DisputeAgent  # noqa: F401

__all__ = ["AnalysisError", "DisputeAgent"]
