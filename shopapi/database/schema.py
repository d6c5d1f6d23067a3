schema = [
    {"table_name":"user_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "username":"TEXT UNIQUE NOT NULL",
        "email":"TEXT UNIQUE NOT NULL",
        "password_hash":"TEXT NOT NULL",
        "first_name":"TEXT DEFAULT ''",
        "last_name":"TEXT DEFAULT ''",
        "role":"TEXT DEFAULT 'User'",
        "active":"BOOL DEFAULT 1",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP"
        }},
    {"table_name":"refresh_token_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "token":"TEXT UNIQUE NOT NULL",
        "user_id":"INTEGER NOT NULL",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "expires":"TIMESTAMP NOT NULL",
        "revoked_at":"TIMESTAMP",
        "active":"BOOL DEFAULT 1",
        "FOREIGN KEY":[{
                "key":"user_id",
                "parent_table":"user_table",
                "parent_key":"id",
                "instruction":"ON DELETE CASCADE"
            }]
        }},
    {"table_name":"supplier_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "company_name":"TEXT NOT NULL",
        "contact_person":"TEXT",
        "email":"TEXT",
        "phone":"TEXT",
        "address":"TEXT",
        "city":"TEXT",
        "active":"BOOL DEFAULT 1",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP"
        }},
    {"table_name":"product_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "supplier_id":"INTEGER NOT NULL",
        "name":"TEXT NOT NULL",
        "description":"TEXT",
        "price":"DECIMAL NOT NULL DEFAULT 0 CHECK (price >= 0)",
        "stock":"INTEGER NOT NULL DEFAULT 0 CHECK (stock >= 0)",
        "image_url":"TEXT",
        "active":"BOOL DEFAULT 1",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP",
        "FOREIGN KEY":[{
                "key":"supplier_id",
                "parent_table":"supplier_table",
                "parent_key":"id",
                "instruction":"ON DELETE RESTRICT"
            }]
        }},
    {
        "table_name":"category_table",
        "table_columns":{
            "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
            "name":"TEXT NOT NULL",
            "description":"TEXT",
            "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
            "updated_at":"TIMESTAMP"
        }},
    {
        "table_name":"product_category",
        "table_columns":{
            "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
            "product_id":"INTEGER NOT NULL",
            "category_id":"INTEGER NOT NULL",
            "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
            "UNIQUE":["product_id", "category_id"],
            "FOREIGN KEY":[{
                    "key":"product_id",
                    "parent_table":"product_table",
                    "parent_key":"id",
                    "instruction":"ON DELETE CASCADE"
                },
                {
                    "key":"category_id",
                    "parent_table":"category_table",
                    "parent_key":"id",
                    "instruction":"ON DELETE CASCADE"
                }]
        }},
    {"table_name":"customer_table",
    "table_columns":{
        "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
        "first_name":"TEXT NOT NULL",
        "last_name":"TEXT DEFAULT ''",
        "email":"TEXT UNIQUE NOT NULL",
        "phone":"TEXT",
        "address":"TEXT",
        "city":"TEXT",
        "postal_code":"TEXT",
        "active":"BOOL DEFAULT 1",
        "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        "updated_at":"TIMESTAMP"
        }},
    {
        "table_name":"order_table",
        "table_columns":{
            "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
            "order_number":"TEXT UNIQUE NOT NULL",
            "customer_id":"INTEGER NOT NULL",
            "order_date":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
            "total_amount":"DECIMAL DEFAULT 0",
            "tax_amount":"DECIMAL DEFAULT 0",
            "shipping_cost":"DECIMAL DEFAULT 0",
            "status":"TEXT DEFAULT 'Pending' CHECK (status IN ('Pending', 'Processing', 'Shipped', 'Delivered', 'Cancelled'))",
            "shipping_address":"TEXT",
            "notes":"TEXT",
            "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
            "updated_at":"TIMESTAMP",
            "FOREIGN KEY":[{
                    "key":"customer_id",
                    "parent_table":"customer_table",
                    "parent_key":"id",
                    "instruction":"ON DELETE RESTRICT"
                }]
        }},
    {
        "table_name":"order_item_table",
        "table_columns":{
            "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
            "order_id":"INTEGER NOT NULL",
            "product_id":"INTEGER NOT NULL",
            "quantity":"INTEGER NOT NULL CHECK (quantity > 0)",
            "unit_price":"DECIMAL NOT NULL CHECK (unit_price >= 0)",   #Snapshot at order time
            "total_price":"DECIMAL NOT NULL",
            "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
            "FOREIGN KEY":[{
                    "key":"order_id",
                    "parent_table":"order_table",
                    "parent_key":"id",
                    "instruction":"ON DELETE CASCADE"
                },
                {
                    "key":"product_id",
                    "parent_table":"product_table",
                    "parent_key":"id",
                    "instruction":"ON DELETE RESTRICT"
                }]
        }},
    {
        "table_name":"review_table",
        "table_columns":{
            "id":"INTEGER PRIMARY KEY AUTOINCREMENT",
            "product_id":"INTEGER NOT NULL",
            "customer_id":"INTEGER NOT NULL",
            "rating":"INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5)",
            "comment":"TEXT",
            "approved":"BOOL DEFAULT 0",
            "created_at":"TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
            "updated_at":"TIMESTAMP",
            "UNIQUE":["product_id", "customer_id"],
            "FOREIGN KEY":[{
                    "key":"product_id",
                    "parent_table":"product_table",
                    "parent_key":"id",
                    "instruction":"ON DELETE CASCADE"
                },
                {
                    "key":"customer_id",
                    "parent_table":"customer_table",
                    "parent_key":"id",
                    "instruction":"ON DELETE RESTRICT"
            }]
        }},
]
