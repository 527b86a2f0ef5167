"""Business logic services package.

Contains the link store backends, alias resolution, user-agent
classification, IP geolocation, click recording, statistics aggregation,
short link creation and click export.
"""
