from coding_agent_chat.cli import app

app()
