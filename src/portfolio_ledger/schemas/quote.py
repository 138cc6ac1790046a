"""Quote provider schemas."""

from pydantic import BaseModel


class SymbolMatch(BaseModel):
    """One equity returned by symbol search."""

    symbol: str
    name: str
    exchange: str | None = None
