"""Catalog categories offered in the client's category picker (Amazon UK browse nodes)."""

from shoppr.schemas.search import Category

CATEGORIES: list[Category] = [
    Category(id=category_id, name=name)
    for category_id, name in [
        ("2619526011", "Appliances"),
        ("2350150011", "Apps & Games"),
        ("2617942011", "Arts, Crafts & Sewing"),
        ("audible", "Audible"),
        ("15690151", "Automotive"),
        ("165797011", "Baby"),
        ("11055981", "Beauty"),
        ("1000", "Books"),
        ("301668", "CDs & Vinyl"),
        ("2335753011", "Cell Phones & Accessories"),
        ("7141124011", "Clothing, Shoes & Jewelry"),
        ("4991426011", "Collectibles & Fine Arts"),
        ("624868011", "Digital Music"),
        ("493964", "Electronics"),
        ("2864120011", "Gift Cards"),
        ("16310211", "Grocery & Gourmet Food"),
        ("11260433011", "Handmade"),
        ("3760931", "Health & Personal Care"),
        ("1063498", "Home & Kitchen"),
        ("16310161", "Industrial & Scientific"),
        ("133141011", "Kindle Store"),
        ("599872", "Magazine Subscriptions"),
        ("2625374011", "Movies & TV"),
        ("11965861", "Musical Instruments"),
        ("1084128", "Office Products"),
        ("3238155011", "Patio, Lawn & Garden"),
        ("2619534011", "Pet Supplies"),
        ("409488", "Software"),
        ("3375301", "Sports & Outdoors"),
        ("468240", "Tools & Home Improvement"),
        ("165795011", "Toys & Games"),
        ("10677470011", "Vehicles"),
        ("11846801", "Video Games"),
    ]
]
