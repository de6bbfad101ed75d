"""
Quillpost Modules
=================

Collection of reusable Flask blueprint modules.
"""

__all__ = ['subscribers']
