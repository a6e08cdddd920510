"""
ControlStock - controlled-substance inventory for hospital pharmacies.
"""
__version__ = "0.1.0"
