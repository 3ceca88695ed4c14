from app.ojsadmin import create_app

app = create_app()
