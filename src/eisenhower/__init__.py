"""Eisenhower — personal task management on an urgent/important grid.

Tasks live on a two-axis priority plane, grouped into topics, behind
per-user accounts. The identity layer gates every resource access and
the grid engine maps tasks between priority and display coordinates.
"""

__version__ = "0.1.0"
