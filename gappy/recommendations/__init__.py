"""
Place recommendations for a travel type.

Responsibilities:
- Client side: cache recommendation state per account and travel type, with
  a freshness window and one request in flight per key.
- Server side: filter the bundled Shibuya places to the traveler's walking
  radius and rank them for the travel type.
"""
