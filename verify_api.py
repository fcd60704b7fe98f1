import requests
import json
import sys

BASE_URL = "http://localhost:8002/api/v1"
CART_ID = "verify-cart-0001"

def print_response(name, response):
    print(f"--- {name} ---")
    print(f"Status: {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2, ensure_ascii=False))
    except ValueError:
        print(response.text)
    print("\n")

def run_verification(coupon_code=None):
    headers = {"X-Cart-Id": CART_ID}

    # 1. Public settings
    print("1. Reading shop settings...")
    resp = requests.get(f"{BASE_URL}/settings/")
    print_response("Settings", resp)

    # 2. Catalog
    print("2. Listing products...")
    resp = requests.get(f"{BASE_URL}/products/")
    print_response("Products", resp)
    if resp.status_code != 200 or not resp.json():
        print("No products available, aborting.")
        return
    product = resp.json()[0]

    # 3. Cart
    print("3. Adding to cart...")
    requests.delete(f"{BASE_URL}/cart/clear", headers=headers)
    resp = requests.post(f"{BASE_URL}/cart/add", headers=headers, json={
        "product_id": product["id"],
        "quantity": 1
    })
    print_response("Add to Cart", resp)

    # 4. Coupon preview
    if coupon_code:
        print("4. Validating coupon...")
        resp = requests.post(f"{BASE_URL}/coupons/validate", headers=headers, json={"code": coupon_code})
        print_response("Validate Coupon", resp)

    # 5. Checkout (pickup, so no delivery fee)
    print("5. Placing order...")
    resp = requests.post(f"{BASE_URL}/checkout/", headers=headers, json={
        "customer_name": "Client Test",
        "customer_phone": "+216 22 000 000",
        "delivery_method": "pickup",
        "notes": "Commande de vérification",
        "coupon_code": coupon_code
    })
    print_response("Checkout", resp)
    if resp.status_code != 200:
        print("Checkout failed, aborting.")
        return

    # 6. Confirmation page
    order_number = resp.json()["order_number"]
    resp = requests.get(f"{BASE_URL}/checkout/confirmation/{order_number}")
    print_response("Confirmation", resp)

    # 7. Cart must be empty now
    resp = requests.get(f"{BASE_URL}/cart/", headers=headers)
    print_response("Cart After Checkout", resp)

if __name__ == "__main__":
    run_verification(sys.argv[1] if len(sys.argv) > 1 else None)
