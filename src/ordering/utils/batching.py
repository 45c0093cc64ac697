"""Read whole result sets from Protean querysets.

A queryset without an explicit limit returns at most the provider's default
page (100 records), so unbounded reads walk the results page by page.
"""

BATCH_SIZE = 100


def iterate_in_batches(query, batch_size: int = BATCH_SIZE):
    """Yield every record matched by ``query``, ``batch_size`` at a time."""
    offset = 0
    while True:
        result = query.offset(offset).limit(batch_size).all()
        yield from result.items
        offset += batch_size
        if offset >= result.total:
            break
