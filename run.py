from pairplay.cli import cli

if __name__ == '__main__':
    # Same entry point as the `pairplay` console script
    cli()
