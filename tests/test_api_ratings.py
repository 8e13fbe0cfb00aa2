from bson import ObjectId


def test_submit_rating(client, catalog_data):
    res = client.post("/api/ratings", json={
        "productId": catalog_data["stand"], "rating": 5, "review": "Sturdy", "guestName": "Sam"})
    assert res.status_code == 201
    body = res.json()
    assert body["rating"] == 5
    assert body["guestName"] == "Sam"
    assert "createdAt" in body


def test_rating_out_of_range_is_rejected(client, catalog_data):
    for value in (0, 6):
        res = client.post("/api/ratings", json={"productId": catalog_data["stand"], "rating": value})
        assert res.status_code == 400
        assert res.json()["error"] == "Rating must be between 1 and 5"


def test_rating_requires_product_id(client):
    assert client.post("/api/ratings", json={"rating": 3}).status_code == 400


def test_rating_for_unknown_product(client):
    res = client.post("/api/ratings", json={"productId": "64b7f0c2a1b2c3d4e5f60718", "rating": 3})
    assert res.status_code == 404
    assert res.json() == {"error": "Product not found"}


def test_list_ratings_with_aggregate(client, catalog_data):
    res = client.get(f"/api/ratings/product/{catalog_data['headphones']}")
    body = res.json()
    assert body["averageRating"] == 4.0
    assert body["totalRatings"] == 3
    assert [r["rating"] for r in body["ratings"]] == [3, 4, 5]


def test_list_ratings_empty(client, catalog_data):
    body = client.get(f"/api/ratings/product/{catalog_data['speaker']}").json()
    assert body == {"ratings": [], "averageRating": 0, "totalRatings": 0}


def test_new_rating_changes_catalog_aggregate(client, catalog_data):
    client.post("/api/ratings", json={"productId": catalog_data["headphones"], "rating": 5})
    product = client.get(f"/api/products/{catalog_data['headphones']}").json()
    # (5 + 4 + 3 + 5) / 4 = 4.25
    assert product["averageRating"] == 4.3
    assert product["totalRatings"] == 4


def test_review_recomputes_persisted_aggregate(client, catalog_data, db):
    product_id = catalog_data["speaker"]
    for value, comment in ((4, "Loud"), (5, None)):
        res = client.post("/api/reviews", json={"productId": product_id, "rating": value, "comment": comment})
        assert res.status_code == 201

    stored = db["product"].find_one({"_id": ObjectId(product_id)})
    assert stored["averageRating"] == 4.5
    assert stored["reviewCount"] == 2

    reviews = client.get(f"/api/reviews/product/{product_id}").json()
    assert [r["rating"] for r in reviews] == [5, 4]

    product = client.get(f"/api/products/{product_id}").json()
    assert product["averageRating"] == 4.5
    assert product["reviewCount"] == 2
    assert product["totalRatings"] == 0


def test_invalid_review(client, catalog_data):
    res = client.post("/api/reviews", json={"productId": catalog_data["speaker"], "rating": 9})
    assert res.status_code == 400
    assert res.json()["error"] == "Rating must be between 1 and 5"
