from sdcpp_server.cli import app

app()
