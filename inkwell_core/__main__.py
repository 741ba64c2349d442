#!/usr/bin/env python3

import os
import sys
import json
import getpass
import tempfile
import argparse
import logging
from typing import List, Optional
from collections import OrderedDict

import uvicorn
import sqlalchemy.exc

from inkwell_core import settings as _settings
from inkwell_core.api import auth, helpers
from inkwell_core.api.base import APIException
from inkwell_core.api.api import create_app
from inkwell_core.documents import render_document
from inkwell_core.persistence import database, models


def get_parser(program: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=program)

    commands = parser.add_subparsers(
        description="Available sub-commands: init, apps*, articles*, run",
        dest="command",
        required=True,
        metavar="<command>",
        help="the sub-command to be executed (some have their own subcommands, too)"
    )

    parser_init = commands.add_parser(
        "init",
        description="Initialize the project by creating the config file and the database tables"
    )

    parser_apps = commands.add_parser(
        "apps",
        description="Manage registered API applications"
    )
    app_command = parser_apps.add_subparsers(
        description="Available actions: show, add, del",
        dest="action",
        metavar="<action>",
        required=True,
        help="action to perform for apps"
    )
    parser_apps_show = app_command.add_parser(
        "show",
        description="Show a list of currently registered applications"
    )
    parser_apps_add = app_command.add_parser(
        "add",
        description="Add a new application with a password for the login & authentication process"
    )
    parser_apps_del = app_command.add_parser(
        "del",
        description="Delete an existing application to block further API access"
    )

    parser_articles = commands.add_parser(
        "articles",
        description="Manage stored articles"
    )
    article_command = parser_articles.add_subparsers(
        description="Available actions: show, import, export",
        dest="action",
        metavar="<action>",
        required=True,
        help="action to perform for articles"
    )
    parser_articles_show = article_command.add_parser(
        "show",
        description="Show a list of all articles"
    )
    parser_articles_import = article_command.add_parser(
        "import",
        description="Import markdown files with optional YAML front matter as new articles (all files or none)"
    )
    parser_articles_export = article_command.add_parser(
        "export",
        description="Export an article as markdown file with YAML front matter"
    )

    parser_run = commands.add_parser(
        "run",
        description="Run 'uvicorn' ASGI server to serve the Inkwell REST API"
    )

    parser_init.add_argument(
        "--database",
        type=str,
        metavar="url",
        help="Database connection URL including scheme and auth"
    )
    parser_init.add_argument(
        "--no-migrations",
        action="store_true",
        help="Do not apply migrations automatically (not recommended)"
    )

    for show_parser in (parser_apps_show, parser_articles_show):
        show_parser.add_argument(
            "--json",
            action="store_true",
            help="Print the result in JSON format instead of human-readable text"
        )
        show_parser.add_argument(
            "--indent",
            type=int,
            metavar="n",
            help="(JSON-only) Indent the JSON response with n spaces (default: none)"
        )

    parser_apps_add.add_argument(
        "--app",
        type=str,
        metavar="name",
        required=True,
        help="Name of the newly created application account"
    )
    parser_apps_add.add_argument(
        "--password",
        type=str,
        metavar="passwd",
        help="Password for the new app account (will be asked interactively if omitted)"
    )

    parser_apps_del.add_argument(
        "app",
        metavar="name/ID",
        help="name or ID of the application that should be deleted"
    )

    parser_articles_import.add_argument(
        "files",
        metavar="file",
        nargs="+",
        help="path of a markdown file that should be imported"
    )
    parser_articles_import.add_argument(
        "--draft",
        action="store_true",
        help="Store the imported articles as unpublished drafts"
    )

    parser_articles_export.add_argument(
        "identifier",
        metavar="ID",
        type=int,
        help="Unique ID to identify the article"
    )
    parser_articles_export.add_argument(
        "--output",
        type=str,
        metavar="file",
        help="Write the document to this file instead of stdout"
    )

    parser_run.add_argument(
        "--host",
        type=str,
        metavar="host",
        help="Bind TCP socket to this host (overwrite config)"
    )
    parser_run.add_argument(
        "--port",
        type=int,
        metavar="port",
        help="Bind TCP socket to this port (overwrite config)"
    )
    parser_run.add_argument(
        "--config",
        type=str,
        metavar="config",
        help="Use this config file instead of searching CONFIG_PATH or 'config.json'"
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable full debug mode including tracebacks via HTTP (probably insecure)"
    )
    parser_run.add_argument(
        "--debug-sql",
        action="store_true",
        help="Enable echoing of database actions (overwrites config)"
    )
    parser_run.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload"
    )
    parser_run.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="n",
        help="Number of worker processes (not valid with --reload)",
    )
    parser_run.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable access logs"
    )
    parser_run.add_argument(
        "--root-path",
        type=str,
        default="",
        metavar="p",
        help="Sub-mount the application below the given path"
    )

    return parser


def run_server(args: argparse.Namespace) -> int:
    if args.debug:
        print("Do not start the server this way during production!", file=sys.stderr)

    if args.config:
        _settings.CONFIG_PATHS.insert(0, args.config)
    try:
        settings = _settings.Settings()
    except ValueError:
        print("Ensure that the configuration file is valid. Please correct any errors.", file=sys.stderr)
        raise

    if args.debug:
        settings.logging.root["level"] = "DEBUG"
        for handler in settings.logging.handlers:
            settings.logging.handlers[handler]["level"] = "DEBUG"
    if args.debug_sql:
        settings.database.debug_sql = args.debug_sql

    port = args.port
    if port is None:
        port = settings.server.port
    host = args.host
    if host is None:
        host = settings.server.host

    # Reloader and worker processes import the app on their own, so they
    # get the effective settings via a temporary config file in CONFIG_PATH
    runtime_config = None
    if args.reload or (args.workers or 1) > 1:
        fd, runtime_config = tempfile.mkstemp(prefix="inkwell_run_", suffix=".json")
        os.close(fd)
        _settings.store_configuration(settings, runtime_config)
        os.environ["CONFIG_PATH"] = runtime_config
        app = "inkwell_core.api:api.app"
    else:
        app = create_app(settings=settings)

    logging.getLogger("inkwell_core").info(f"Server running at host {host} port {port}")
    try:
        uvicorn.run(
            app,
            port=port,
            host=host,
            reload=args.reload,
            workers=args.workers,
            log_level="debug" if args.debug else "info",
            log_config=settings.logging.model_dump(),
            access_log=not args.no_access_log,
            proxy_headers=True,
            root_path=args.root_path
        )
    finally:
        if runtime_config and os.path.exists(runtime_config):
            os.remove(runtime_config)
    return 0


def _load_settings() -> _settings.Settings:
    settings = _settings.Settings()
    database.init(settings.database.connection, settings.database.debug_sql)
    auth.configure(settings.server.allow_weak_insecure_password_hashes)
    return settings


def init_project(args: argparse.Namespace) -> int:
    db = _settings.get_db_from_env(args.database)
    if _settings.find_config_file() is None:
        print("No settings file found. A basic config will be created now.")
        _settings.store_configuration(_settings.get_default_core_config(db))
    else:
        print(
            "A config file has been found and will be used. If you want a fresh installation, "
            "you should remove the config file and clear the database, then run this command again."
        )

    settings = _settings.Settings()
    connection = args.database or settings.database.connection
    if not args.no_migrations:
        database.upgrade(connection)
    database.init(connection, settings.database.debug_sql, create_all=False)

    with database.get_new_session() as session:
        try:
            apps = session.query(models.Application).all()
        except sqlalchemy.exc.DatabaseError:
            print(
                "No table 'applications' found in the database. Please initialize the database "
                "first by running this command without the '--no-migrations' switch.",
                file=sys.stderr
            )
            return 1

    if len(apps) == 0:
        print(
            "\nThere's no registered application yet. Nobody can change articles via "
            "the API without an application account, because the authentication procedure "
            "makes use of those accounts. Use the 'apps add' command to add new application "
            "accounts to the database to be able to login to the API via name and password."
        )

    print("Done.")
    return 0


def print_table(objs: List[dict], keys: Optional[List[str]] = None):
    info = OrderedDict()
    if keys:
        for k in keys:
            info[k] = len(k)
    for obj in objs:
        for key in obj:
            if keys and key not in keys:
                continue
            if key not in info:
                info[key] = len(key)
            info[key] = max(len(str(obj.get(key))), info.get(key))
    print(" | ".join([f"{k:<{info[k]}}" for k in info]))
    print("-+-".join(["-" * info[k] for k in info]))
    for obj in objs:
        print(" | ".join([f"{obj[k]!s:<{info[k]}}" for k in info]))


def show_apps(args: argparse.Namespace) -> int:
    _load_settings()
    with database.get_new_session() as session:
        applications = session.query(models.Application).all()

        if args.json:
            print(json.dumps([app.schema.model_dump() for app in applications], indent=args.indent))
            return 0
        print_table([app.schema.model_dump() for app in applications], ["id", "name", "created"])
    return 0


def add_app(args: argparse.Namespace) -> int:
    if not args.app:
        print("Empty app names are not allowed.", file=sys.stderr)
        return 1

    _load_settings()
    with database.get_new_session() as session:
        if session.query(models.Application).filter_by(name=args.app).all():
            print(
                f"An application with the given name {args.app!r} already "
                f"exists. Therefore, it can't be created. Exiting.",
                file=sys.stderr
            )
            return 1

        passwd = args.password or getpass.getpass()
        if not passwd:
            print("A password is mandatory. No new application account created!", file=sys.stderr)
            return 1

        app = auth.create_application(args.app, passwd, session)
        print(f"Successfully created new application {app.name!r}.")
    return 0


def del_app(args: argparse.Namespace) -> int:
    app = args.app
    _load_settings()
    with database.get_new_session() as session:
        try:
            app = int(app)
            application = session.get(models.Application, app)
            if application is None:
                print(f"There's no application with the ID {app} in the database!", file=sys.stderr)
                return 1

        except ValueError:
            application = session.query(models.Application).filter_by(name=app).one_or_none()
            if application is None:
                print(f"There's no application with name {app!r} in the database!", file=sys.stderr)
                return 1

        session.delete(application)
        session.commit()
        print(
            f"Successfully deleted application named {application.name!r} (ID {application.id}). "
            f"Further changes won't be possible. Access tokens already issued for this "
            f"application are rejected from now on."
        )
    return 0


def handle_apps(args: argparse.Namespace) -> int:
    return {
        "show": show_apps,
        "add": add_app,
        "del": del_app
    }[args.action](args)


def show_articles(args: argparse.Namespace) -> int:
    def _conv(d: dict) -> dict:
        d["tags"] = ", ".join(d["tags"])
        return d

    settings = _load_settings()
    with database.get_new_session() as session:
        articles = session.query(models.Article).order_by(models.Article.id).all()
        results = [a.to_schema(settings.general.words_per_minute).model_dump() for a in articles]

        if args.json:
            print(json.dumps(results, indent=args.indent))
            return 0
        print_table(
            [_conv(article) for article in results],
            ["id", "slug", "title", "tags", "published", "reading_time"]
        )
    return 0


def import_articles(args: argparse.Namespace) -> int:
    settings = _load_settings()

    creations = []
    for path in args.files:
        try:
            with open(path, "r", encoding="UTF-8") as f:
                creations.append((path, helpers.parse_article_document(f.read(), False if args.draft else True)))
        except OSError as exc:
            print(f"Failed to read {path!r}: {exc}", file=sys.stderr)
            return 1
        except APIException as exc:
            print(f"Invalid document {path!r}: {exc.message}", file=sys.stderr)
            return 1

    # Either all documents are stored or none of them
    with database.get_new_session() as session:
        articles = []
        for path, creation in creations:
            try:
                articles.append((path, helpers.add_new_article(creation, session, settings.general.max_body_length)))
            except APIException as exc:
                session.rollback()
                print(f"Can't import {path!r}: {exc.message}", file=sys.stderr)
                return 1
        session.commit()
        for path, article in articles:
            print(f"Imported {path!r} as article {article.id} ({article.slug!r}).")
    return 0


def export_article(args: argparse.Namespace) -> int:
    _load_settings()
    with database.get_new_session() as session:
        article = session.get(models.Article, args.identifier)
        if article is None:
            print(f"No article with identifier {args.identifier} has been found!", file=sys.stderr)
            return 1

        content = render_document(
            title=article.title,
            body=article.body,
            description=article.description,
            tags=[tag.name for tag in article.tags],
            author=article.author
        )

    if args.output is None:
        print(content, end="" if content.endswith("\n") else "\n")
        return 0
    with open(args.output, "w", encoding="UTF-8") as f:
        f.write(content)
    print(f"Successfully exported article {args.identifier} to {os.path.abspath(args.output)!r}.")
    return 0


def handle_articles(args: argparse.Namespace) -> int:
    return {
        "show": show_articles,
        "import": import_articles,
        "export": export_article
    }[args.action](args)


if __name__ == "__main__":
    program_name = sys.argv[0] if not sys.argv[0].endswith("__main__.py") else "inkwell_core"
    namespace = get_parser(program_name).parse_args(sys.argv[1:])

    command_functions = {
        "run": run_server,
        "init": init_project,
        "apps": handle_apps,
        "articles": handle_articles
    }
    exit(command_functions[namespace.command](namespace))
