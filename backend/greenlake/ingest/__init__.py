"""
Batch ingest of the city's tourism datasets.

producer: CSV files -> Redis Streams (one stream per topic)
consumer: Redis Streams -> catalog tables
"""
