from app import create_app, db
from app.models import Group, Jornada, Match, Prediction, User

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Group": Group,
        "Jornada": Jornada,
        "Match": Match,
        "Prediction": Prediction,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
