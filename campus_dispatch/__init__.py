"""Campus delivery order lifecycle and rider dispatch"""
__version__ = "0.1.0"
