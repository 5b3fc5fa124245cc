import unittest

from storefront.services.catalog_service import _contains_pattern, split_search_terms
from tests.support import StorefrontTestCase


class CatalogTestCase(StorefrontTestCase):
    def setUp(self):
        super().setUp()
        self.notebook = self.add_product("Spiral Notebook", 35.0, stock=12, category="Notebooks")
        self.pen = self.add_product("Blue Ballpen", 8.0, stock=0, category="Writing")
        self.planner = self.add_product("Anniversary Planner", 250.0, stock=3, category="Limited Items")
        self.retired = self.add_product("Retired Notebook", 20.0, stock=7, category="Notebooks", deleted=True)

    # ---------- Listing ----------

    def test_list_products_hides_deleted_and_defaults_rating(self):
        products = self.client.get("/api/v1/products").json()
        self.assertEqual([p["id"] for p in products], [self.notebook, self.pen, self.planner])

        notebook = products[0]
        self.assertEqual(notebook["avg_rating"], 5)
        self.assertEqual(notebook["rating_count"], 0)
        self.assertEqual(notebook["stock_quantity"], 12)
        self.assertEqual(products[1]["stock_quantity"], 0)

    def test_get_product(self):
        resp = self.client.get(f"/api/v1/products/{self.pen}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["name"], "Blue Ballpen")

        self.assertEqual(self.client.get(f"/api/v1/products/{self.retired}").status_code, 404)
        self.assertEqual(self.client.get("/api/v1/products/9999").status_code, 404)
        self.assertEqual(self.client.get("/api/v1/products/9999/ratings").status_code, 404)

    def test_categories_and_limited_items(self):
        by_category = self.client.get("/api/v1/products/category/Notebooks").json()
        self.assertEqual([p["id"] for p in by_category], [self.notebook])

        limited = self.client.get("/api/v1/limited-items").json()
        self.assertEqual([p["id"] for p in limited], [self.planner])

        categories = self.client.get("/api/v1/categories").json()
        self.assertEqual(categories, [
            {"id": "Notebooks", "name": "Notebooks"},
            {"id": "Writing", "name": "Writing"},
        ])

    # ---------- Search ----------

    def test_every_term_must_match_name_or_category(self):
        resp = self.client.get("/api/v1/search", params={"query": "notebook spiral"})
        self.assertEqual([p["id"] for p in resp.json()], [self.notebook])

        # Category text counts as a match too
        resp = self.client.get("/api/v1/search", params={"query": "writing blue"})
        self.assertEqual([p["id"] for p in resp.json()], [self.pen])

        resp = self.client.get("/api/v1/search", params={"query": "notebook pen"})
        self.assertEqual(resp.json(), [])

    def test_search_input_is_never_treated_as_sql_or_wildcards(self):
        for query in ("%", "_", "' OR 1=1 --", "notebook'; DROP TABLE products; --"):
            with self.subTest(query=query):
                resp = self.client.get("/api/v1/search", params={"query": query})
                self.assertEqual(resp.status_code, 200)
                self.assertEqual(resp.json(), [])
        self.assertEqual(len(self.client.get("/api/v1/products").json()), 3)

    def test_blank_search_is_rejected(self):
        for params in ({}, {"query": "   "}):
            resp = self.client.get("/api/v1/search", params=params)
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json()["detail"], "Search query is required")

    def test_search_term_helpers(self):
        self.assertEqual(split_search_terms("  red   pen "), ["red", "pen"])
        self.assertEqual(split_search_terms(None), [])
        self.assertEqual(_contains_pattern("50%_off"), "%50\\%\\_off%")


if __name__ == "__main__":
    unittest.main()
