"""
Procurement Domain - BOM to purchase workflow.

This domain holds the arithmetic behind purchasing:
- Stock check of a Bill of Materials and shortfall per line
- Purchase requisition lines with estimated prices
- Purchase order totals with GST
- MD approval threshold
- Goods receipt status and quality verdicts
"""
