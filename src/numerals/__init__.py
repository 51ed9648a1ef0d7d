"""numerals: line-by-line algebra evaluation for notes.

Entry points live in :mod:`numerals.processing`::

    from numerals.processing import Scope, evaluate_block, preprocess

    block = preprocess("apples = 2\\n2 + 3 =>\\n")
    result = evaluate_block(block.processed_source, Scope())
    assert result.results == [2, 5]
"""

__version__ = "0.1.0"
