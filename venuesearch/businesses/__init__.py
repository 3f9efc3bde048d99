"""
Business records as persisted in the document store.

Responsibilities:
- Describe the bookmarked venue document and its nested Yelp source block.
- Enforce the stored embedding invariant (384 finite components).
"""
