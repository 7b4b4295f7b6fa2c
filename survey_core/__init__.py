"""
Site-survey infrastructure core.

The surveyed building tree (existing equipment plus future-proposal additions)
and the aggregation that turns it into priced BOM / RFP / proposal ledgers.
Pure Python. No rendering, no HTTP.
"""
