"""
Data models for the resume sync package
"""
