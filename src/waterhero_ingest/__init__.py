"""
WaterHero ingest: pull water meter readings from the WaterHero API and
forward them to QuestDB over the InfluxDB line protocol.
"""

__version__ = "0.1.0"
