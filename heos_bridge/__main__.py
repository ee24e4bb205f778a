#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import sys
import argparse
import json
import asyncio
import logging
from signal import SIGINT, SIGTERM

import dotenv

from heos_bridge.internal_types import *
from heos_bridge import (
    __version__ as pkg_version,
    DEFAULT_PORT,
    HeosConnector,
    HeosClientConfig,
    heos_connect,
    entries_sorted_by_values,
  )
from heos_bridge.protocol import HeosCommand

class CmdExitError(RuntimeError):
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

def _response_to_jsonable(response: str) -> Jsonable:
    try:
        return json.loads(response)
    except ValueError:
        return response

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    async def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    def get_client_config(self) -> HeosClientConfig:
        return HeosClientConfig(
            host=self._args.host,
            username=self._args.username,
            password=self._args.password,
            port=self._args.port,
            timeout_secs=self._args.timeout,
          )

    async def connect(self) -> HeosConnector:
        connector = await heos_connect(config=self.get_client_config())
        if not await connector.is_connected():
            await connector.aclose()
            raise CmdExitError(1, f"HEOS controller at {connector.config.host}:{connector.config.port} did not respond")
        return connector

    async def cmd_emulator(self) -> int:
        from heos_bridge.emulator import HeosEmulator
        emulator = HeosEmulator(
            bind_addr=self._args.bind,
            port=self._args.port,
            username=self._args.username,
            password=self._args.password,
            signed_in=self._args.signed_in,
          )
        def sigint_cleanup() -> None:
            emulator.close(CmdExitError(1, "Emulator terminated with SIGINT or SIGTERM"))
        loop = asyncio.get_running_loop()
        for signal in (SIGINT, SIGTERM):
            loop.add_signal_handler(signal, sigint_cleanup)
        try:
            await emulator.run()
        finally:
            for signal in (SIGINT, SIGTERM):
                loop.remove_signal_handler(signal)
        return 0

    async def cmd_exec(self) -> int:
        continue_on_error: bool = self._args.continue_on_error
        command_lines: List[str] = self._args.exec_command
        if len(command_lines) == 0:
            raise CmdExitError(1, "No HEOS commands specified")
        commands = [ HeosCommand.from_wire(line) for line in command_lines ]
        response_datas: List[JsonableDict] = []
        try:
            async with await self.connect() as connector:
                for command in commands:
                    response_data: JsonableDict = dict(command=command.wire_form)
                    response = await connector.send_raw(command.name, command.arguments)
                    if response is None:
                        response_data["error"] = "No valid response (see log)"
                        response_datas.append(response_data)
                        if not continue_on_error:
                            raise CmdExitError(1, f"Command {command.wire_form} failed")
                    else:
                        response_data["response"] = _response_to_jsonable(response)
                        response_datas.append(response_data)
        finally:
            print(json.dumps(response_datas, indent=2))
        return 0

    async def cmd_list(self) -> int:
        what: str = self._args.catalog
        async with await self.connect() as connector:
            if what == "players":
                catalog = await connector.update_players()
            elif what == "stations":
                catalog = await connector.update_stations()
            else:
                catalog = await connector.update_playlists()
        result = [ dict(id=entry_id, name=name) for entry_id, name in entries_sorted_by_values(catalog) ]
        print(json.dumps(result, indent=2))
        return 0

    async def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    def add_connection_args(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument('--host', default=None,
                            help='''The HEOS controller (any HEOS player) host address. Default: use env var HEOS_BRIDGE_HOST.''')
        parser.add_argument("--port", default=None, type=int,
            help=f"The HEOS controller port number to connect to. Default: {DEFAULT_PORT}")
        parser.add_argument("-u", "--username", default=None,
            help="HEOS account username. Default: use env var HEOS_BRIDGE_USERNAME.")
        parser.add_argument("-p", "--password", default=None,
            help="HEOS account password. Default: use env var HEOS_BRIDGE_PASSWORD.")
        parser.add_argument("--timeout", default=None, type=float,
            help="Timeout for each command exchange, in seconds. Default: 5.")

    async def arun(self) -> int:
        """Run the heos-bridge command-line tool with provided arguments

        Args:
            argv (Optional[Sequence[str]], optional):
                A list of commandline arguments (NOT including the program as argv[0]!),
                or None to use sys.argv[1:]. Defaults to None.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(description="Control Denon HEOS players.")

        # ======================= Main command

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')

        # ======================= emulator

        from heos_bridge.emulator import DEFAULT_USERNAME, DEFAULT_PASSWORD
        parser_emulator = subparsers.add_parser('emulator', description="Run a HEOS controller emulator for testing purposes.")
        parser_emulator.add_argument("--port", default=DEFAULT_PORT, type=int,
            help=f"Port number to listen on. Default: {DEFAULT_PORT}")
        parser_emulator.add_argument('-b', '--bind', default="0.0.0.0",
                            help='''The local unicast IP address to bind to. Default: 0.0.0.0.''')
        parser_emulator.add_argument("-u", "--username", default=DEFAULT_USERNAME,
            help=f"HEOS account username accepted by sign_in. Default: {DEFAULT_USERNAME}")
        parser_emulator.add_argument("-p", "--password", default=DEFAULT_PASSWORD,
            help="HEOS account password accepted by sign_in.")
        parser_emulator.add_argument('--signed-in', dest="signed_in", action='store_true', default=False,
                            help='Start with the account already signed in. Default: False')
        parser_emulator.set_defaults(func=self.cmd_emulator)

        # ======================= exec

        parser_exec = subparsers.add_parser('exec', description="Execute one or more raw HEOS commands and print the responses as JSON.")
        self.add_connection_args(parser_exec)
        parser_exec.add_argument('--continue', dest="continue_on_error", action='store_true', default=False,
                            help='Continue running commands on error. Default: False')
        parser_exec.add_argument('exec_command', nargs=argparse.REMAINDER,
                            help='''One or more commands to execute; e.g., "player/get_play_state?pid=12".''')
        parser_exec.set_defaults(func=self.cmd_exec)

        # ======================= list

        parser_list = subparsers.add_parser('list', description="List players, favorite stations or playlists, sorted by name.")
        self.add_connection_args(parser_list)
        parser_list.add_argument('catalog', choices=['players', 'stations', 'playlists'],
                            help='''The catalog to list.''')
        parser_list.set_defaults(func=self.cmd_list)

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

        # =========================================================

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            func: Callable[[], Awaitable[int]] = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = await func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            ex_desc = str(ex)
            if len(ex_desc) == 0:
                ex_desc = ex.__class__.__name__
            print(f"heos-bridge: error: {ex_desc}", file=sys.stderr)
        except BaseException as ex:
            print(f"heos-bridge: Unhandled exception {ex.__class__.__name__}: {ex}", file=sys.stderr)
            raise

        return rc

    def run(self) -> int:
        return asyncio.run(self.arun())

def run(argv: Optional[Sequence[str]]=None) -> int:
    dotenv.load_dotenv()
    try:
        rc = CommandHandler(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

async def arun(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = await CommandHandler(argv).arun()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    sys.exit(run())
