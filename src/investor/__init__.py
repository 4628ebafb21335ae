"""
Virtual investors.

`core.py` holds the per-investor state, locks and task factories; `policy.py` the
trading rules; `random_investor.py` wires the two together behind the Investor port.
"""
