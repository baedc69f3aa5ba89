"""
Registration, login and the bearer-token auth gate.
"""
