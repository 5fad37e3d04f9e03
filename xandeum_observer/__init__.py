"""
Xandeum Network Observer: scoring pipeline for a pNode storage network.

Polls the observer backend for pNodes and derives health, SLA compliance,
reputation, anomalies, alerts and reward projections. The pieces are wired
together by pipeline.ObserverContext.
"""

__version__ = "0.1.0"
