"""
Search over bookmarked Yelp businesses.

Natural-language queries are translated by an LLM into structured filters and
run against the document store; a separate semantic path ranks businesses by
embedding similarity.
"""
