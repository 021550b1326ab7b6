"""
Speak Coach.

Backend for an English speaking-practice tutor: quota tracking,
practice analytics and AI tutor endpoints.
"""

__version__ = "0.1.0"
