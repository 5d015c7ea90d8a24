import logging
import click
from flask import (
    Flask, request, session, send_file,
    render_template, redirect, url_for, make_response, current_app
)
from werkzeug.exceptions import RequestEntityTooLarge
from functools import wraps

from config import Config
from models import DocumentStore, ImageStore, CredentialStore
from utils import sanitize_filename, render_markdown, audit

# ==========================================================
# ⚙️ APP SETUP
# ==========================================================
app = Flask(__name__)
app.config.from_object(Config)

logging.basicConfig(level=app.config["LOG_LEVEL"],
                    format="%(asctime)s %(levelname)s %(name)s - %(message)s")
app.logger.setLevel(app.config["LOG_LEVEL"])
app.logger.debug("Loaded store config: data=%s images=%s users=%s",
                 app.config["DATA_DIR"], app.config["IMAGE_DIR"], app.config["USERS_FILE"])


# ==========================================================
# 🔒 HELPER FUNCTIONS
# ==========================================================
def documents():
    return DocumentStore(current_app.config["DATA_DIR"])

def images():
    return ImageStore(current_app.config["IMAGE_DIR"])

def credentials():
    return CredentialStore(current_app.config["USERS_FILE"])

def set_message(message):
    """Replace the one-shot message shown on the next rendered page."""
    session["message"] = message

def document_exists(store, filename):
    return store.allows(filename) and store.exists(filename)

def validate_new_document(store, filename):
    """Return an error message for a bad new document name, or None."""
    if not filename:
        return "A name is required."
    if store.exists(filename):
        return "A file with that name already exists."
    if not store.allows(filename):
        return "Not a valid filename extension."
    return None

def not_found(filename, code=302):
    set_message(f"{filename} does not exist.")
    return redirect(url_for("index"), code=code)

def login_required(func):
    """Runs before anything else in the view; passes the signed-in username."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        username = session.get("username")
        if not username:
            set_message("You must be signed in to do that.")
            return redirect(url_for("index"))
        return func(username, *args, **kwargs)
    return wrapper


@app.context_processor
def inject_session():
    # Rendering a page consumes the pending message.
    return {
        "username": session.get("username"),
        "message": session.pop("message", None),
    }


@app.errorhandler(RequestEntityTooLarge)
def upload_too_large(error):
    app.logger.warning("Rejected oversized request to %s", request.path)
    set_message("File is too large.")
    return redirect(url_for("upload_image_page"))


# ==========================================================
# 🚪 AUTHENTICATION ROUTES
# ==========================================================
@app.route("/users/signup", methods=["GET"])
def signup_page():
    return render_template("signup.html", signup_name="")


@app.route("/users/signup", methods=["POST"])
def signup():
    username = (request.form.get("username") or "").strip()
    password = request.form.get("password") or ""
    store = credentials()

    error = None
    if not username:
        error = "Username cannot be blank."
    elif not password.strip():
        error = "Password cannot be blank."
    elif store.exists(username):
        error = "A user with that name already exists."

    if error:
        set_message(error)
        return render_template("signup.html", signup_name=username), 422

    store.put(username, password)
    audit(username, "signup")
    set_message("Account created. Please sign in.")
    return redirect(url_for("signin_page"))


@app.route("/users/signin", methods=["GET"])
def signin_page():
    return render_template("signin.html", signin_name="")


@app.route("/users/signin", methods=["POST"])
def signin():
    username = (request.form.get("username") or "").strip()
    password = request.form.get("password") or ""

    if not credentials().verify(username, password):
        app.logger.info("Failed sign-in for %r", username)
        set_message("Invalid credentials")
        return render_template("signin.html", signin_name=username), 422

    session["username"] = username
    audit(username, "signin")
    set_message("Welcome!")
    return redirect(url_for("index"))


@app.route("/users/signout", methods=["POST"])
def signout():
    username = session.pop("username", None)
    audit(username, "signout")
    set_message("You have been signed out.")
    return redirect(url_for("index"))


# ==========================================================
# 📁 DOCUMENT ROUTES
# ==========================================================
@app.route("/")
def index():
    image_names = images().list() if app.config["IMAGES_ENABLED"] else []
    return render_template("index.html", files=documents().list(), images=image_names,
                           images_enabled=app.config["IMAGES_ENABLED"])


@app.route("/new", methods=["GET"])
@login_required
def new_document(user):
    return render_template("new.html", filename="")


@app.route("/create", methods=["POST"])
@login_required
def create_document(user):
    filename = sanitize_filename((request.form.get("filename") or "").strip())
    store = documents()

    error = validate_new_document(store, filename)
    if error:
        set_message(error)
        return render_template("new.html", filename=filename), 422

    store.put(filename, b"")
    audit(user, "create", filename)
    set_message(f"{filename} was created.")
    return redirect(url_for("index"))


@app.route("/<filename>/duplicate", methods=["GET"])
@login_required
def duplicate_page(user, filename):
    filename = sanitize_filename(filename)
    if not document_exists(documents(), filename):
        return not_found(filename, code=303)
    return render_template("duplicate.html", filename=filename, new_filename=filename)


@app.route("/duplicate", methods=["POST"])
@login_required
def duplicate_document(user):
    filename = sanitize_filename(request.form.get("filename"))
    new_filename = sanitize_filename((request.form.get("new_filename") or "").strip())
    store = documents()

    if not document_exists(store, filename):
        return not_found(filename)

    error = validate_new_document(store, new_filename)
    if error:
        set_message(error)
        return render_template("duplicate.html", filename=filename,
                               new_filename=new_filename), 422

    store.copy(filename, new_filename)
    audit(user, "duplicate", f"{filename} -> {new_filename}")
    set_message(f"{new_filename} was created.")
    return redirect(url_for("index"))


@app.route("/<filename>", methods=["GET"])
def view_document(filename):
    filename = sanitize_filename(filename)

    image_store = images()
    if app.config["IMAGES_ENABLED"] and image_store.allows(filename) and image_store.exists(filename):
        return redirect(url_for("view_image", filename=filename), code=303)

    store = documents()
    if not document_exists(store, filename):
        return not_found(filename, code=303)

    kind = store.kind(filename)
    content = store.get(filename)
    if kind["markdown"]:
        response = make_response(render_template(
            "document.html", filename=filename,
            content=render_markdown(content.decode("utf-8", errors="replace"))))
    else:
        response = make_response(content)
    response.headers["Content-Type"] = kind["content_type"]
    return response


@app.route("/<filename>/edit", methods=["GET"])
@login_required
def edit_document(user, filename):
    filename = sanitize_filename(filename)
    store = documents()
    if not document_exists(store, filename):
        return not_found(filename, code=303)
    return render_template("edit.html", filename=filename,
                           content=store.get(filename).decode("utf-8", errors="replace"))


@app.route("/<filename>", methods=["POST"])
@login_required
def update_document(user, filename):
    filename = sanitize_filename(filename)
    store = documents()
    if not document_exists(store, filename):
        return not_found(filename)

    store.put(filename, request.form.get("content", ""))
    audit(user, "update", filename)
    set_message(f"{filename} has been updated.")
    return redirect(url_for("index"))


@app.route("/<filename>/delete", methods=["POST"])
@login_required
def delete_document(user, filename):
    filename = sanitize_filename(filename)
    store = documents()
    if not document_exists(store, filename):
        return not_found(filename)

    store.delete(filename)
    audit(user, "delete", filename)
    set_message(f"{filename} has been deleted.")
    return redirect(url_for("index"))


# ==========================================================
# 🖼 IMAGE ROUTES
# ==========================================================
@app.route("/images/upload", methods=["GET"])
@login_required
def upload_image_page(user):
    return render_template("upload.html")


@app.route("/images/upload", methods=["POST"])
@login_required
def upload_image(user):
    upload = request.files.get("image")
    if not upload or not upload.filename:
        set_message("Please choose an image to upload.")
        return render_template("upload.html"), 422

    filename = sanitize_filename(upload.filename)
    store = images()
    if not store.allows(filename):
        set_message(f"{filename} is not a recognized image.")
        return render_template("upload.html"), 422

    store.save_upload(upload, filename)
    audit(user, "upload", filename)
    set_message(f"{filename} successfully uploaded.")
    return redirect(url_for("index"))


@app.route("/images/<filename>", methods=["GET"])
def view_image(filename):
    filename = sanitize_filename(filename)
    store = images()
    if not store.exists(filename):
        return not_found(filename)
    if not store.allows(filename):
        set_message(f"{filename} is not a recognized image.")
        return redirect(url_for("index"))
    return send_file(store.path(filename), mimetype=store.content_type(filename))


@app.route("/images/<filename>/delete", methods=["POST"])
@login_required
def delete_image(user, filename):
    filename = sanitize_filename(filename)
    store = images()
    if not store.exists(filename):
        return not_found(filename)

    store.delete(filename)
    audit(user, "delete_image", filename)
    set_message(f"{filename} has been deleted.")
    return redirect(url_for("index"))


# ==========================================================
# 🛠 CLI
# ==========================================================
@app.cli.command("create-user")
@click.argument("username")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
def create_user_command(username, password):
    """Add a user to the credential file."""
    username = username.strip()
    store = credentials()
    if not username or not password.strip():
        raise click.ClickException("Username and password cannot be blank.")
    if store.exists(username):
        raise click.ClickException(f"A user named {username} already exists.")
    store.put(username, password)
    audit(username, "create_user", "cli")
    click.echo(f"Created user {username}.")


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8080, debug=True)
