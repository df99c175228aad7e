from flask_sqlalchemy import SQLAlchemy

# Custom query class that adds server-side sorting for list endpoints.
from utils.table_query import SortableQuery
from flask_login import LoginManager
from flask_migrate import Migrate

db = SQLAlchemy(query_class=SortableQuery)
login_manager = LoginManager()
migrate = Migrate()
