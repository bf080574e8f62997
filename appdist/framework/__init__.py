"""Build-specific framework utilities.

Configuration, the dependency filter, resource staging, license extraction
and aggregation, validation and the packaging adapter. The step-execution
kernel they run on lives in `stepkit`.
"""
