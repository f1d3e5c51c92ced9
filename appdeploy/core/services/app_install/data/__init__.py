"""
L0 Data — Pure constants. No logic.
"""
