from .database import init_db, get_conn, get_db
from .gateway import Gateway, sql_now

__all__ = ['init_db', 'get_conn', 'get_db', 'Gateway', 'sql_now']
