from stackshare.models.share_config import ShareError, build_share_config
from stackshare.services.deployment_fetcher import DeploymentFetcher
from stackshare.services.share_pipeline import run_pipeline
from stackshare.utils import aws_clients
from stackshare.utils.s3_handler import S3Handler
from stackshare.utils.serverless_config import load_service_settings
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError
import argparse
import logging
import sys

logger = logging.getLogger("stackshare")


# run pip install -e .
# then `stackshare share -b my-public-bucket` next to serverless.yml
def share(args):
    """
    republish the latest deployment and print its share link
    """
    try:
        settings = load_service_settings(
            args.config,
            stage=args.stage,
            region=args.region,
            profile=args.profile,
        )
        session = aws_clients.session(settings.profile, settings.region)
        s3_handler = S3Handler(
            region_name=settings.region,
            s3_client=aws_clients.s3(session, settings.region),
        )
        fetcher = DeploymentFetcher(
            s3_handler,
            cloudformation_client=aws_clients.cloudformation(session, settings.region),
        )

        deployment = fetcher.fetch(settings)
        config = build_share_config(
            deployment,
            settings.share,
            bucket=args.bucket,
            code_key=args.code_key,
            template_key=args.template_key,
            stack=args.stack,
        )
        link = run_pipeline(config, deployment, s3_handler)
    except (ShareError, ClientError, BotoCoreError, S3UploadFailedError) as e:
        logger.error("Share failed: %s", e)
        sys.exit(1)

    print(link)
    return link


def main():
    parser = argparse.ArgumentParser(
        prog='stackshare',
        description='Republish a deployed Serverless service to a public '
        '          S3 bucket and print a link that creates the stack'
    )
    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='Available commands'
    )

    share_parser = subparsers.add_parser(
        'share',
        help='Create a sharable CloudFormation template'
    )
    share_parser.add_argument(
        '--bucket',
        '-b',
        help='Destination S3 bucket (default: custom.share.bucket)'
    )
    share_parser.add_argument(
        '--codeKey',
        '-c',
        dest='code_key',
        help='Key of the uploaded code archive '
        '(default: the key used by the deployment)'
    )
    share_parser.add_argument(
        '--templateKey',
        '-t',
        dest='template_key',
        help='Key of the uploaded template (default: template.json)'
    )
    share_parser.add_argument(
        '--stack',
        '-s',
        help='Stack name used in the share link (default: service name)'
    )
    share_parser.add_argument(
        '--config',
        default='serverless.yml',
        help='Service configuration file (default: serverless.yml)'
    )
    share_parser.add_argument('--stage', help='Deployed stage (default: provider.stage or dev)')
    share_parser.add_argument('--region', '-r', help='AWS region (default: provider.region)')
    share_parser.add_argument('--profile', help='AWS credentials profile')

    share_parser.set_defaults(func=share)
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, 'verbose', False) else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    # execute the passed function
    args.func(args)


if __name__ == '__main__':
    main()
