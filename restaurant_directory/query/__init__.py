"""
Query construction and ranking.

Responsibilities:
- Compile raw request parameters into predicates.
- Pick a text search strategy and build the geo-proximity clause.
- Score recommendation candidates.
- Assemble everything into an executable query plan and paginate results.
"""
