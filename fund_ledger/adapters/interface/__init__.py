"""Interface adapters (user-facing entry points)."""

__all__: list[str] = []
