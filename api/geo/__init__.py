"""
IP geolocation lookups.
"""
