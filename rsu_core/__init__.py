"""
Roadside Unit (RSU) Core Package.

Beacon ingestion, per-peer delivery statistics and V2V proximity warnings
for a fixed roadside node receiving CAM-like beacons over UDP.

Package structure:
- geo: Great-circle distance and bearing
- proto: Beacon wire codec, warning levels, presenter snapshots
- tracking: Peer labels, per-peer statistics, session state
- domain: Proximity engine and session aggregation
- io: UDP transport, log sinks, ingestion loop
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.1.0"
__author__ = "RSU Monitor Team"
