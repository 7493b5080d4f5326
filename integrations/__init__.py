"""
Third-party integrations.
"""
