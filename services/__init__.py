"""
Services Package

Background services of the recorder:
- snapshot_task: one fetch -> extract -> persist cycle for one instrument
- scheduler: fixed-interval fan-out of snapshot tasks over all instruments
"""
