"""
Txflow Kernel - transaction lifecycle core

A status-guarded transaction workflow with:
- Central transition table for every lifecycle action
- Conditional (compare-and-set) status updates
- Immutable version history on resubmission
- Exception-case correction loop
- Deadline-bound revision windows with automatic escalation
"""

__version__ = "0.1.0"
