"""
Exchange Connectors Package

Each exchange has its own subfolder with an api_client.py holding its REST logic.
Currently only OKX is used, for public order book snapshots.
"""
