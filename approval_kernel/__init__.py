"""
Approval Kernel

Routes spending requests through role-ordered approval levels with:
- Amount-threshold chain resolution stamped at submission
- Per-request serialized decisions (first decision wins)
- Business-hours SLA monitoring
- Notification intents for every state change and SLA breach
"""

__version__ = "0.1.0"
