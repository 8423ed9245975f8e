"""
Shiftboard Integration - Who's-On Pipeline

Responsibilities:
- Signed JSON-RPC calls to the Shiftboard API (client, auth)
- Cursor pagination with a hard page ceiling (pagination)
- Cross-page deduplication of referenced accounts and workgroups (merge)
- Grouping per-assignment shift records into shift occurrences (grouping)
- Shift, account and workgroup services consumed by the dashboard (shifts, directory)
"""
