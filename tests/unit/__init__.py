"""
Unit tests for selfretry.

Test individual components in isolation:
- Stack capture and call-site keys (synthetic stacks)
- Signature matching and overloaded variants
- Namespace loading and candidate binding
- Retry context loop, handlers and eviction
- Settings and logging setup
"""
