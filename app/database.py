"""SQLite connection management and schema bootstrap."""
import sqlite3
import threading
from pathlib import Path

from .ranking import search_rank

BASE_DIR = Path(__file__).resolve().parent.parent
DATABASE_PATH = BASE_DIR / "marketplace.db"

# Thread-local storage for database connections
_local = threading.local()


def create_connection(path: Path | str) -> sqlite3.Connection:
    """Open a configured connection (Row factory, FKs, search function)."""
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.create_function("search_rank", 3, search_rank, deterministic=True)
    return conn


def get_db() -> sqlite3.Connection:
    """Get thread-local database connection.

    The connection is reopened when DATABASE_PATH changes so that worker
    threads never keep talking to a stale database file.
    """
    current_path = str(DATABASE_PATH)
    if getattr(_local, "connection", None) is None or getattr(_local, "path", None) != current_path:
        close_db()
        _local.connection = create_connection(current_path)
        _local.path = current_path
    return _local.connection


def close_db() -> None:
    """Close this thread's connection, if any."""
    connection = getattr(_local, "connection", None)
    if connection is not None:
        connection.close()
    _local.connection = None
    _local.path = None


def init_db():
    """Initialize database schema"""
    db = get_db()

    db.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            name TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'user' CHECK(role IN ('user', 'admin')),
            preferred_language TEXT NOT NULL DEFAULT 'en' CHECK(preferred_language IN ('en', 'es')),
            email_verified INTEGER NOT NULL DEFAULT 0,
            email_verification_token TEXT,
            email_verification_expires TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Sessions table for login sessions
    db.execute("""
        CREATE TABLE IF NOT EXISTS sessions (
            id TEXT PRIMARY KEY,
            user_id INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            expires_at TIMESTAMP NOT NULL,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        )
    """)

    # Courses; curriculum is a JSON list of sections with lessons
    db.execute("""
        CREATE TABLE IF NOT EXISTS courses (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            slug TEXT NOT NULL UNIQUE,
            description TEXT NOT NULL,
            long_description TEXT,
            price REAL NOT NULL DEFAULT 0 CHECK(price >= 0),
            image_url TEXT,
            curriculum TEXT NOT NULL DEFAULT '[]',
            duration_hours REAL,
            level TEXT CHECK(level IN ('beginner', 'intermediate', 'advanced')),
            is_published INTEGER NOT NULL DEFAULT 0,
            title_es TEXT,
            description_es TEXT,
            long_description_es TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            deleted_at TIMESTAMP
        )
    """)

    db.execute("""
        CREATE TABLE IF NOT EXISTS digital_products (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            slug TEXT NOT NULL UNIQUE,
            description TEXT NOT NULL,
            long_description TEXT,
            price REAL NOT NULL DEFAULT 0 CHECK(price >= 0),
            product_type TEXT NOT NULL CHECK(product_type IN ('pdf', 'audio', 'video', 'ebook')),
            file_key TEXT NOT NULL,
            file_folder TEXT NOT NULL DEFAULT 'products',
            file_size_mb REAL,
            preview_url TEXT,
            image_url TEXT,
            download_limit INTEGER NOT NULL DEFAULT 3,
            is_published INTEGER NOT NULL DEFAULT 0,
            title_es TEXT,
            description_es TEXT,
            long_description_es TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    db.execute("""
        CREATE TABLE IF NOT EXISTS events (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            slug TEXT NOT NULL UNIQUE,
            description TEXT NOT NULL,
            long_description TEXT,
            price REAL NOT NULL DEFAULT 0 CHECK(price >= 0),
            event_date TIMESTAMP NOT NULL,
            duration_hours REAL NOT NULL DEFAULT 1,
            venue_name TEXT NOT NULL,
            venue_address TEXT NOT NULL,
            venue_city TEXT NOT NULL,
            venue_country TEXT NOT NULL,
            capacity INTEGER NOT NULL CHECK(capacity > 0),
            available_spots INTEGER NOT NULL CHECK(available_spots >= 0),
            image_url TEXT,
            is_published INTEGER NOT NULL DEFAULT 0,
            title_es TEXT,
            description_es TEXT,
            long_description_es TEXT,
            venue_name_es TEXT,
            venue_address_es TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CHECK(available_spots <= capacity)
        )
    """)

    db.execute("""
        CREATE TABLE IF NOT EXISTS orders (
            id TEXT PRIMARY KEY,
            user_id INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK(status IN ('pending', 'completed', 'cancelled', 'refunded')),
            total_amount REAL NOT NULL DEFAULT 0,
            currency TEXT NOT NULL DEFAULT 'USD',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        )
    """)

    db.execute("""
        CREATE TABLE IF NOT EXISTS order_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            order_id TEXT NOT NULL,
            course_id TEXT,
            digital_product_id TEXT,
            item_type TEXT NOT NULL CHECK(item_type IN ('course', 'digital_product')),
            title TEXT NOT NULL,
            price REAL NOT NULL,
            quantity INTEGER NOT NULL DEFAULT 1,
            FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE,
            FOREIGN KEY (course_id) REFERENCES courses(id) ON DELETE SET NULL,
            FOREIGN KEY (digital_product_id) REFERENCES digital_products(id) ON DELETE SET NULL,
            CHECK(
                (item_type = 'course' AND course_id IS NOT NULL) OR
                (item_type = 'digital_product' AND digital_product_id IS NOT NULL)
            )
        )
    """)

    # moderated_at distinguishes rejected reviews from pending ones
    db.execute("""
        CREATE TABLE IF NOT EXISTS reviews (
            id TEXT PRIMARY KEY,
            user_id INTEGER NOT NULL,
            course_id TEXT NOT NULL,
            rating INTEGER NOT NULL CHECK(rating >= 1 AND rating <= 5),
            comment TEXT,
            is_approved INTEGER NOT NULL DEFAULT 0,
            moderated_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (course_id) REFERENCES courses(id) ON DELETE CASCADE,
            UNIQUE(user_id, course_id)
        )
    """)

    db.execute("""
        CREATE TABLE IF NOT EXISTS course_progress (
            id TEXT PRIMARY KEY,
            user_id INTEGER NOT NULL,
            course_id TEXT NOT NULL,
            completed_lessons TEXT NOT NULL DEFAULT '[]',
            progress_percentage INTEGER NOT NULL DEFAULT 0
                CHECK(progress_percentage >= 0 AND progress_percentage <= 100),
            last_accessed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            completed_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (course_id) REFERENCES courses(id) ON DELETE CASCADE,
            UNIQUE(user_id, course_id)
        )
    """)

    db.execute("""
        CREATE TABLE IF NOT EXISTS lesson_progress (
            id TEXT PRIMARY KEY,
            user_id INTEGER NOT NULL,
            course_id TEXT NOT NULL,
            lesson_id TEXT NOT NULL,
            completed INTEGER NOT NULL DEFAULT 0,
            time_spent_seconds INTEGER NOT NULL DEFAULT 0 CHECK(time_spent_seconds >= 0),
            attempts INTEGER NOT NULL DEFAULT 0 CHECK(attempts >= 0),
            score INTEGER CHECK(score IS NULL OR (score >= 0 AND score <= 100)),
            first_started_at TIMESTAMP NOT NULL,
            last_accessed_at TIMESTAMP NOT NULL,
            completed_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (course_id) REFERENCES courses(id) ON DELETE CASCADE,
            UNIQUE(user_id, course_id, lesson_id)
        )
    """)

    db.execute("""
        CREATE TABLE IF NOT EXISTS download_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            digital_product_id TEXT NOT NULL,
            order_id TEXT,
            ip_address TEXT,
            user_agent TEXT,
            downloaded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (digital_product_id) REFERENCES digital_products(id) ON DELETE CASCADE,
            FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE SET NULL
        )
    """)

    # Single-use password reset tokens
    db.execute("""
        CREATE TABLE IF NOT EXISTS password_reset_tokens (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            token TEXT NOT NULL UNIQUE,
            expires_at TIMESTAMP NOT NULL,
            used INTEGER NOT NULL DEFAULT 0,
            used_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        )
    """)

    db.execute("""
        CREATE TABLE IF NOT EXISTS bookings (
            id TEXT PRIMARY KEY,
            user_id INTEGER NOT NULL,
            event_id TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK(status IN ('pending', 'confirmed', 'cancelled', 'attended')),
            attendees INTEGER NOT NULL DEFAULT 1 CHECK(attendees > 0),
            total_price REAL NOT NULL DEFAULT 0 CHECK(total_price >= 0),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (event_id) REFERENCES events(id) ON DELETE CASCADE,
            UNIQUE(user_id, event_id)
        )
    """)

    # Indexes
    db.execute("CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_courses_published ON courses(is_published, deleted_at)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_courses_level ON courses(level)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_products_type ON digital_products(product_type)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_events_date ON events(event_date)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_orders_user ON orders(user_id, status)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_reviews_course ON reviews(course_id, is_approved)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_course_progress_user ON course_progress(user_id)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_lesson_progress_user_course ON lesson_progress(user_id, course_id)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_download_logs_user_product ON download_logs(user_id, digital_product_id)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_users_verification_token ON users(email_verification_token)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_reset_tokens_user ON password_reset_tokens(user_id, used)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_bookings_user ON bookings(user_id)")

    db.commit()


def cleanup_expired_sessions() -> int:
    """Remove expired sessions"""
    db = get_db()
    cursor = db.execute("DELETE FROM sessions WHERE expires_at <= datetime('now')")
    db.commit()
    return cursor.rowcount


def cleanup_expired_reset_tokens(older_than_hours: int = 24) -> int:
    """Remove password reset tokens that expired more than `older_than_hours` ago"""
    db = get_db()
    cursor = db.execute(
        "DELETE FROM password_reset_tokens WHERE expires_at < datetime('now', '-' || ? || ' hours')",
        (older_than_hours,)
    )
    db.commit()
    return cursor.rowcount
