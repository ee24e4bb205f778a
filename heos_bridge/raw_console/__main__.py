#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
An interactive console that writes HEOS command lines typed by the user and
prints every line the controller sends back, including unsolicited events.
No response correlation is done.
"""

from __future__ import annotations

import sys
import argparse
import asyncio
import logging
import dotenv
import aioconsole
import colorama # type: ignore[import]
from colorama import Fore, Style
import traceback

from heos_bridge.internal_types import *
from heos_bridge.pkg_logging import logger
from heos_bridge.constants import STREAM_LIMIT
from heos_bridge.exceptions import HeosInvalidCommandError

from heos_bridge.client import HeosClientConfig
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

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True
    _reader: Optional[asyncio.StreamReader] = None
    _writer: Optional[asyncio.StreamWriter] = None
    _console_task: Optional[asyncio.Task] = None
    _receive_task: Optional[asyncio.Task] = None
    _colorize_stdout: bool = True
    _client_config: Optional[HeosClientConfig] = None

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    def ocolor(self, codes: str) -> str:
        return codes if self._colorize_stdout else ""

    def get_client_config(self) -> HeosClientConfig:
        if self._client_config is None:
            self._client_config = HeosClientConfig(
                host=self._args.ip_address,
                port=self._args.port,
              )
        return self._client_config

    async def handle_console_input(self) -> None:
        assert self._writer is not None
        try:
            while True:
                raw_data = await aioconsole.ainput(">>> ")
                raw_data = raw_data.strip()
                if raw_data == "":
                    continue
                if raw_data == "exit" or raw_data == "quit" or raw_data == "q":
                    break
                command: Optional[HeosCommand] = None
                try:
                    command = HeosCommand.from_wire(raw_data)
                except HeosInvalidCommandError as e:
                    if self._provide_traceback:
                        print(f"\r{self.ocolor(Fore.RED)}Invalid command: {e}\n{traceback.format_exc()}{self.ocolor(Style.RESET_ALL)}")
                    else:
                        print(f"\r{self.ocolor(Fore.RED)}Invalid command: {e}{self.ocolor(Style.RESET_ALL)}")
                if command is not None:
                    print(f"\r{self.ocolor(Fore.GREEN)}{command.wire_form} ->{self.ocolor(Style.RESET_ALL)}")
                    self._writer.write(command.raw_data)
                    await self._writer.drain()
                ### allow a response to be printed before the next prompt
                await asyncio.sleep(0.3)
        except EOFError:
            print()
        except Exception as e:
            logger.debug("Exception in console input handler", exc_info=e)
            raise
        finally:
            logger.debug("Console input handler exiting")
            if self._receive_task is not None:
                self._receive_task.cancel()

    async def handle_received_data(self) -> None:
        assert self._reader is not None
        try:
            while True:
                line_bytes = await self._reader.readline()
                if len(line_bytes) == 0:
                    print(f"\r    <- {self.ocolor(Fore.RED)}Connection closed by controller{self.ocolor(Style.RESET_ALL)}")
                    break
                line = line_bytes.decode('utf-8', errors='replace').rstrip('\r\n')
                print(f"\r    <- {self.ocolor(Fore.BLUE)}{line}{self.ocolor(Style.RESET_ALL)}")
        except Exception as e:
            logger.debug("Exception in Receive data handler", exc_info=e)
            raise
        finally:
            logger.debug("Receive data handler exiting")
            if self._console_task is not None:
                self._console_task.cancel()

    async def cmd_bare(self) -> int:
        config = self.get_client_config()
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(config.host, config.port, limit=STREAM_LIMIT),
                timeout=config.connect_timeout_secs,
              )
        except (OSError, asyncio.TimeoutError) as e:
            raise CmdExitError(1, f"Could not connect to {config.host}:{config.port}: {e}") from e
        print(f"{self.ocolor(Style.BRIGHT)}Connected to {config.host}:{config.port}; type 'quit' to exit{self.ocolor(Style.RESET_ALL)}")
        try:
            self._console_task = asyncio.create_task(self.handle_console_input())
            self._receive_task = asyncio.create_task(self.handle_received_data())
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
        finally:
            logger.debug("Command exiting")
            if self._console_task is not None:
                self._console_task.cancel()
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except OSError as e:
                logger.debug(f"Error while closing connection: {e}")

        return 0

    async def arun(self) -> int:
        """Run the raw console with provided arguments

        Args:
            argv (Optional[Sequence[str]], optional):
                A list of commandline arguments (NOT including the program as argv[0]!),
                or None to use sys.argv[1:]. Defaults to None.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(description="Interactive raw HEOS CLI protocol console.")

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.add_argument('--no-color', dest='no_color', action='store_true', default=False,
                            help='''Do not colorize output''')
        parser.add_argument('-p', '--port', default=None, type=int,
                            help='''The port number to connect to. Default: HEOS_BRIDGE_PORT or 1255''')
        parser.add_argument('ip_address', default=None, nargs='?',
                            help='''The LAN IP address of any HEOS player. Default: HEOS_BRIDGE_HOST''')

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback
        self._colorize_stdout = not args.no_color and sys.stdout.isatty()
        if self._colorize_stdout:
            colorama.just_fix_windows_console()

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            rc = await self.cmd_bare()
            logging.debug(f"Command returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            print(f"heos-raw-console: error: {ex}", file=sys.stderr)
        except BaseException as ex:
            print(f"heos-raw-console: Unhandled exception: {ex}", file=sys.stderr)
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
