"""
FulfillOps - per-unit fulfillment availability for orders with partial
fulfillments and refunds.
"""
