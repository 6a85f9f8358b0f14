"""
farmutil: assemble a pool of local and remote (farmsrv) workers and run a
utility plugin on it.
"""

__version__ = "0.1.0"
