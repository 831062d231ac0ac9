from marketplace import create_app
from marketplace.extensions import db
from marketplace.models import Product, User, UserRole

app = create_app()

with app.app_context():
    db.create_all()

    # Create admin account (if not exists)
    admin_email = "admin@example.com"
    admin = User.query.filter_by(email=admin_email).first()
    if not admin:
        admin = User(name="Admin", email=admin_email, role=UserRole.ADMIN)
        admin.set_password("admin123")
        db.session.add(admin)
        print(f"Created admin account: {admin_email} / admin123")

    # Create a buyer to try checkout with
    buyer_email = "buyer@example.com"
    if not User.query.filter_by(email=buyer_email).first():
        buyer = User(name="Sample Buyer", email=buyer_email,
                     role=UserRole.BUYER)
        buyer.set_password("buyer123")
        db.session.add(buyer)
        print(f"Created buyer account: {buyer_email} / buyer123")

    # Create sellers and products
    sellers_data = [
        {
            "email": "seller1@example.com",
            "name": "TechStore Pro",
            "bio": "Gadgets and accessories",
            "products": [
                {
                    "name": "Wireless Bluetooth Headphones",
                    "description": (
                        "High-quality wireless headphones with noise "
                        "cancellation"
                    ),
                    "price": 89.99,
                    "stock": 50,
                    "category": "Electronics",
                },
                {
                    "name": "USB-C Charging Cable",
                    "description": "Fast charging braided cable, 2m",
                    "price": 12.99,
                    "stock": 200,
                    "category": "Electronics",
                },
            ],
        },
        {
            "email": "seller2@example.com",
            "name": "Home Essentials",
            "bio": "Everything for the kitchen and bedroom",
            "products": [
                {
                    "name": "Coffee Maker",
                    "description": "Automatic drip coffee maker",
                    "price": 79.99,
                    "stock": 40,
                    "category": "Home",
                },
                {
                    "name": "Bed Sheet Set",
                    "description": "Premium cotton bed sheet set",
                    "price": 49.99,
                    "stock": 70,
                    "category": "Home",
                },
            ],
        },
    ]

    for seller_data in sellers_data:
        seller = User.query.filter_by(email=seller_data["email"]).first()
        if seller:
            continue
        seller = User(
            name=seller_data["name"],
            email=seller_data["email"],
            role=UserRole.SELLER,
            bio=seller_data["bio"],
        )
        seller.set_password("seller123")
        db.session.add(seller)
        db.session.flush()
        print(
            "Created seller: %s / seller123 - %s"
            % (seller_data["email"], seller_data["name"])
        )

        for product_data in seller_data["products"]:
            db.session.add(Product(seller_id=seller.id, **product_data))

    db.session.commit()
    print("Seed data ready")
