from savelink.cli import app

app(prog_name="savelink")
