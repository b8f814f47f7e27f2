import unittest
from unittest.mock import Mock, patch
from argparse import Namespace

import boto3
from moto import mock_aws

import cli
from cli import main
from stackshare.models.share_config import Deployment
from stackshare.services import share_pipeline
from stackshare.services.deployment_fetcher import VersionNotFoundError
from stackshare.utils.serverless_config import ServiceSettings


def _share_args(**overrides):
    values = dict(command='share', config='serverless.yml', stage=None, region=None,
                  profile=None, bucket=None, code_key=None, template_key=None,
                  stack=None, verbose=False)
    values.update(overrides)
    return Namespace(**values)


class TestCLIMain(unittest.TestCase):
    def test_main_dispatches_share(self):
        handler = Mock()
        args = Namespace(command='share', func=handler)

        with patch('argparse.ArgumentParser.parse_args', return_value=args):
            main()

        handler.assert_called_once_with(args)

    def test_main_missing_command_shows_help_and_exits(self):
        args = Namespace(command=None)

        with patch('argparse.ArgumentParser.parse_args', return_value=args), \
             patch('argparse.ArgumentParser.print_help') as print_help_mock, \
             patch('cli.sys.exit', side_effect=SystemExit(1)) as exit_mock:
            with self.assertRaises(SystemExit):
                main()

        print_help_mock.assert_called_once()
        exit_mock.assert_called_once_with(1)

    def test_share_flags_are_parsed_independently(self):
        argv = ['stackshare', 'share', '-b', 'pub', '--codeKey', 'v1/code.zip',
                '--templateKey', 'v1/template.json', '-s', 'my-stack']

        with patch('sys.argv', argv), patch('cli.share') as share_mock:
            main()

        args = share_mock.call_args[0][0]
        self.assertEqual(args.bucket, 'pub')
        self.assertEqual(args.code_key, 'v1/code.zip')
        self.assertEqual(args.template_key, 'v1/template.json')
        self.assertEqual(args.stack, 'my-stack')
        self.assertEqual(args.config, 'serverless.yml')


class TestShareCommand(unittest.TestCase):
    def setUp(self):
        self.settings = ServiceSettings(service='svc', stage='dev', region='us-east-1',
                                        share={'bucket': 'pub'})
        self.deployment = Deployment(bucket='deploys', service='svc', stage='dev',
                                     region='us-east-1', version='serverless/svc/dev/1/')

    def test_share_prints_link(self):
        fetcher = Mock()
        fetcher.fetch.return_value = self.deployment

        with patch('cli.load_service_settings', return_value=self.settings), \
             patch('cli.aws_clients') as clients, \
             patch('cli.DeploymentFetcher', return_value=fetcher), \
             patch('cli.run_pipeline', return_value='https://link') as run_mock, \
             patch('builtins.print') as print_mock:
            link = cli.share(_share_args(template_key='v1/template.json'))

        self.assertEqual(link, 'https://link')
        print_mock.assert_called_once_with('https://link')
        config = run_mock.call_args[0][0]
        self.assertEqual(config.bucket, 'pub')
        self.assertEqual(config.template_key, 'v1/template.json')
        self.assertEqual(config.code_key, 'serverless/svc/dev/1/svc.zip')
        clients.session.assert_called_once_with(None, 'us-east-1')

    def test_share_failure_exits(self):
        fetcher = Mock()
        fetcher.fetch.side_effect = VersionNotFoundError('Version not found')

        with patch('cli.load_service_settings', return_value=self.settings), \
             patch('cli.aws_clients'), \
             patch('cli.DeploymentFetcher', return_value=fetcher), \
             patch('cli.sys.exit', side_effect=SystemExit(1)) as exit_mock:
            with self.assertRaises(SystemExit):
                cli.share(_share_args())

        exit_mock.assert_called_once_with(1)

    @mock_aws
    def test_failed_code_upload_exits(self):
        client = boto3.client('s3', region_name='us-east-1')
        client.create_bucket(Bucket='deploys')
        client.put_object(Bucket='deploys', Key=self.deployment.code_key, Body=b'zip')
        settings = ServiceSettings(service='svc', stage='dev', region='us-east-1',
                                   deployment_bucket='deploys',
                                   share={'bucket': 'missing-dest'})

        with patch('cli.load_service_settings', return_value=settings), \
             patch('cli.run_pipeline', side_effect=share_pipeline.share_code), \
             patch('cli.sys.exit', side_effect=SystemExit(1)) as exit_mock, \
             self.assertLogs('stackshare', level='ERROR') as logs:
            with self.assertRaises(SystemExit):
                cli.share(_share_args())

        exit_mock.assert_called_once_with(1)
        self.assertTrue(any('Share failed' in line for line in logs.output))
