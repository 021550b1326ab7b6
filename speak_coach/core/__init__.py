"""
Core modules for Speak Coach.

This package contains quota tracking, practice analytics, tutor
personas and prompt construction.
"""
