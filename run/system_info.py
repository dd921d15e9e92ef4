import click
import logging

from chunkwise.memory import get_system_info


@click.command()
@click.option("--indent", type=click.INT, default=2)
def main(indent):
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
    )
    info = get_system_info()
    click.echo(info.to_json(indent=indent))


if __name__ == "__main__":
    main()
