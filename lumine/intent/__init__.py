"""Message classification and extraction.

The intent layer turns an Indonesian chat message into a strict `ParsedQuery`: message kind,
fine-grained intent, resolved date range and the extracted amount, category or keyword. Matching
is driven by the regex tables in `patterns.toml`.
"""
