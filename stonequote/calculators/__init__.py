"""
Deterministic pricing calculators.

Pure Python math. No I/O, no shared state.
Given a frozen snapshot of pieces, materials, rates and tenant settings,
produce cut plans and itemised cost breakdowns rounded to the cent.
"""
