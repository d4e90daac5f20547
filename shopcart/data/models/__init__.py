#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from shopcart.data.models.cart_line import CartLineModel

__all__ = ["CartLineModel"]
