"""
Fuel-monitoring telemetry API.

Serves fuel level, generator/grid power state, and cumulative
consumption/topping metrics for remote sites over HTTP/JSON.
"""
