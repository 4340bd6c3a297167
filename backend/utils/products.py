from bson import ObjectId

from models.cod import CartLine


def _lookup_ids(product_ids):
    ids = []
    for pid in product_ids:
        ids.append(pid)
        if ObjectId.is_valid(pid):
            ids.append(ObjectId(pid))
    return ids


async def reprice_cart_lines(db, lines: list[CartLine]) -> list[CartLine]:
    """
    Replace client supplied price and category with catalog values.
    Lines whose product is not in the catalog are kept as sent.
    """
    product_ids = {line.product_id for line in lines if line.product_id}
    if not product_ids:
        return list(lines)

    catalog = {}
    cursor = db.products.find(
        {"_id": {"$in": _lookup_ids(product_ids)}},
        {"selling_price": 1, "price": 1, "category": 1},
    )
    async for p in cursor:
        catalog[str(p["_id"])] = p

    repriced = []
    for line in lines:
        product = catalog.get(line.product_id)
        if not product:
            repriced.append(line)
            continue

        update = {}
        price = product.get("selling_price", product.get("price"))
        if price is not None:
            update["unit_price"] = float(price)
        if product.get("category"):
            update["category_id"] = str(product["category"])

        repriced.append(line.model_copy(update=update))

    return repriced
