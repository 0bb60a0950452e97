"""
Domain services: pricing, payments, posting lifecycle, featured selection and access control
"""
