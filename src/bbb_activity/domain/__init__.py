"""
bbb_activity.domain

Domain package.

Responsibilities:
- The `Instance` wrapper and session descriptor builder.
- Participant rules and instance-type feature profiles.
"""

# Package marker.
