"""
Application Package

Process entry point: wires settings, storage, the OKX client and the
snapshot scheduler together and handles shutdown signals.
"""
