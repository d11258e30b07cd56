from retryspine.cli.app import app

app()
