"""
Core modules for Velocity Guard.

This package contains the velocity limit definitions, the day and week
ledger windows, the load evaluator and the account service that sequences
store access around it.
"""
