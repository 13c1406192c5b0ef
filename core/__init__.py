"""
Core Package

Contains the exchange-agnostic core of the recorder:
- Schemas: Pydantic models for snapshots, price levels and instrument targets
- Extractor: turns a raw snapshot into bounded, validated price levels
- Errors: FetchError / ExtractError / PersistError taxonomy
- Config and logging shared by every other package
"""
