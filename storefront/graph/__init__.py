"""
Graph — dependency graphs of async nodes, independent nodes run concurrently.

    from storefront import graph as G

    @G.node
    class PartitionNode:
        @classmethod
        async def __compose__(cls, cart: CheckoutNode, services: PricingServices) -> "PartitionNode":
            ...

    pricing = G.graph(QuoteNode)
    result = await pricing.execute(cart, services)
"""

from nodnod import scalar_node as node

from storefront.graph._run import TypedScope, Compiled, graph, compose

__all__ = ("node", "TypedScope", "Compiled", "graph", "compose")
