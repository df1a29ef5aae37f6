"""
Управление проектом - CLI команды.

Работают с SQL хранилищем по DATABASE_URL (in-memory хранилище живёт
только внутри процесса сервера, смотреть там нечего).

Использование:
    python manage.py create-tables
    python manage.py check-db
    python manage.py reset-db
    python manage.py seed-db
    python manage.py run
"""

import argparse

from runstore import config
from runstore.core.database import create_tables as create_all_tables, drop_tables, make_engine, make_session_factory
from runstore.core.errors import Conflict
from runstore.core.repository import SqlAppRepository, SqlUserRepository
from runstore.services.identity_service import IdentityService
from runstore.services.submission_registry import SubmissionRegistry
from runstore.utils.formatting import describe_app


def _services():
    engine = make_engine(config.DATABASE_URL)
    create_all_tables(engine)
    session_factory = make_session_factory(engine)
    identity = IdentityService(SqlUserRepository(session_factory))
    registry = SubmissionRegistry(SqlAppRepository(session_factory), identity)
    return identity, registry


def check_db():
    """Проверка базы данных - показать всех пользователей и приложения"""
    identity, registry = _services()

    users = identity.users.list_all()
    print(f"\n📊 Всего пользователей в БД: {len(users)}\n")
    print("=" * 60)

    if not users:
        print("⚠️  База данных пустая.")
        print("   Выполните: python manage.py seed-db\n")
        return

    for user in users:
        print(f"ID: {user.id}")
        print(f"Email: {user.email}")
        print(f"Имя: {user.name}")
        print(f"Роль: {user.role.value}")
        print(f"Пароль (хеш): {user.hashed_password[:20]}...")
        print(f"Создан: {user.created_at}")

        for app in registry.my_apps(user.id):
            print(f"   📦 {describe_app(app)}")
        print("-" * 60)


def reset_db():
    """Сброс базы данных (удалить все таблицы и создать заново)"""
    print("⚠️  ВНИМАНИЕ: Это удалит все данные из БД!")
    confirm = input("Продолжить? (yes/no): ")

    if confirm.lower() != "yes":
        print("❌ Отменено")
        return

    engine = make_engine(config.DATABASE_URL)
    drop_tables(engine)
    create_all_tables(engine)
    print("✅ База данных сброшена\n")


def seed_db():
    """Заполнить БД администратором и тестовыми пользователями"""
    identity, _ = _services()

    admin = identity.seed_admin()
    print(f"✅ Администратор: {admin.email}")

    test_users = [
        {"email": "user1@test.com", "name": "user1", "password": "password123"},
        {"email": "user2@test.com", "name": "user2", "password": "password123"},
    ]

    for user_data in test_users:
        try:
            identity.register(user_data["email"], user_data["password"], user_data["name"])
        except Conflict:
            print(f"⚠️  Пользователь {user_data['email']} уже существует")
            continue
        print(f"✅ Создан пользователь: {user_data['email']}")

    print("\n✅ Тестовые данные добавлены\n")


def create_tables():
    """Создать таблицы в БД (если их нет)"""
    create_all_tables(make_engine(config.DATABASE_URL))
    print("✅ Таблицы созданы\n")


def run():
    """Запустить API (uvicorn)"""
    import uvicorn

    uvicorn.run("runstore.main:get_application", factory=True, host=config.API_HOST, port=config.API_PORT)


def main():
    """Главная функция - обработка команд"""
    parser = argparse.ArgumentParser(
        description="Управление проектом RunStore API"
    )

    parser.add_argument(
        "command",
        choices=["check-db", "reset-db", "seed-db", "create-tables", "run"],
        help="Команда для выполнения"
    )

    args = parser.parse_args()

    # Выполнение команды
    commands = {
        "check-db": check_db,
        "reset-db": reset_db,
        "seed-db": seed_db,
        "create-tables": create_tables,
        "run": run,
    }

    commands[args.command]()


if __name__ == "__main__":
    main()
