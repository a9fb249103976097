from locust import HttpUser, task, between
import random

class ApiUser(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        # Each simulated client gets its own customer and a well stocked product
        self.user_id = None
        self.product_id = None
        r = self.client.post("/api/users", json={"first_name": f"load_{random.randint(1, 1_000_000)}", "last_name": "tester"})
        if r.status_code == 201:
            self.user_id = r.json()["data"]["id"]
        r = self.client.post(
            "/api/products",
            json={"name": f"item_{random.randint(1, 1_000_000)}", "price": "9.99", "quantity": 100_000},
        )
        if r.status_code == 201:
            self.product_id = r.json()["data"]["id"]

    @task(3)
    def create_order(self):
        if not (self.user_id and self.product_id):
            return
        self.client.post(
            "/api/orders",
            json={"user_id": self.user_id, "items": [{"product_id": self.product_id, "quantity": random.randint(1, 3)}]},
        )

    @task(1)
    def list_orders(self):
        self.client.get("/api/orders", params={"user_id": self.user_id, "limit": 20}, name="/api/orders")
