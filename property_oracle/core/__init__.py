"""
Core domain: models, errors and schemas.
"""
