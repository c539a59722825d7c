"""
Kernel layer.

Deterministic integer kernels used by the in-memory liquidity venues:
- `idletower/kernels/python/lp_math.py` prices joins into constant-product and
  weighted pools.
"""
